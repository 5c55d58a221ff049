"""Tests for the webhook routes."""
import hashlib
import hmac
import json
import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient
from app import app
from core.dispatcher import DriverManager
from platforms.facebook import FacebookDriver
from platforms.exceptions import UpstreamFetchFailed
from platforms.http import HttpResponse
from platforms.telegram import TelegramDriver
from routes import webhook

BODY = json.dumps({
    "object": "page",
    "entry": [{"messaging": [{"sender": {"id": "1"}, "recipient": {"id": "2"}, "message": {"text": "hi"}}]}],
}).encode()


@pytest.fixture
def http():
    client = MagicMock()
    client.post.return_value = HttpResponse(status_code=200, content=b"{}")
    return client


@pytest.fixture
def client(monkeypatch, http):
    manager = DriverManager([
        FacebookDriver(token="fb", app_secret="secret", verify_token="verify", http=http),
        TelegramDriver(token="tg", http=http),
    ])
    monkeypatch.setattr(webhook, "driver_manager", manager)
    monkeypatch.setattr(webhook, "reply_handler", None)
    return TestClient(app)


def signed_headers(body: bytes, secret: str = "secret") -> dict:
    return {"X-Hub-Signature": "sha1=" + hmac.new(secret.encode(), body, hashlib.sha1).hexdigest()}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_health_drivers(client):
    response = client.get("/health/drivers")
    assert response.json()["drivers"] == {"Facebook": True, "Telegram": True}


def test_facebook_verification(client):
    params = {"hub.mode": "subscribe", "hub.verify_token": "verify", "hub.challenge": "1234"}
    response = client.get("/webhook/facebook", params=params)
    assert response.status_code == 200
    assert response.text == "1234"


def test_facebook_verification_fails(client):
    params = {"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "1234"}
    assert client.get("/webhook/facebook", params=params).status_code == 403


def test_webhook_matches_and_replies(client, http):
    handler = MagicMock(return_value="hello back")
    webhook.set_reply_handler(handler)

    response = client.post("/webhook", content=BODY, headers=signed_headers(BODY))

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "driver": "Facebook", "state": "claimed"}
    result, message = handler.call_args.args
    assert message.text == "hi"
    payload = http.post.call_args.args[2]
    assert payload["message"] == {"text": "hello back"}
    assert payload["recipient"] == {"id": "1"}


def test_webhook_bad_signature_is_not_claimed(client):
    response = client.post("/webhook", content=BODY, headers=signed_headers(BODY, "wrong"))
    assert response.status_code == 200
    assert response.json()["state"] == "configured"


def test_platform_webhook_rejects_bad_signature(client):
    response = client.post("/webhook/facebook", content=BODY, headers=signed_headers(BODY, "wrong"))
    assert response.status_code == 401


def test_platform_webhook(client):
    response = client.post("/webhook/facebook", content=BODY, headers=signed_headers(BODY))
    assert response.status_code == 200
    assert response.json()["state"] == "matched"


def test_unknown_platform(client):
    assert client.post("/webhook/myspace", content=b"{}").status_code == 404


def test_malformed_body(client):
    response = client.post("/webhook", content=b"{not json")
    assert response.status_code == 400


def test_event_only_reply(client, http):
    body = json.dumps({
        "object": "page",
        "entry": [{"messaging": [{"sender": {"id": "9"}, "recipient": {"id": "2"}, "postback": {"payload": "GO"}}]}],
    }).encode()
    webhook.set_reply_handler(lambda result, message: "Welcome!" if message is None else None)

    response = client.post("/webhook", content=body, headers=signed_headers(body))

    assert response.json()["state"] == "claimed"
    assert http.post.call_args.args[2]["recipient"] == {"id": "9"}


def test_forged_postback_gets_no_reply(client, http):
    body = json.dumps({
        "object": "page",
        "entry": [{"messaging": [{"sender": {"id": "victim"}, "recipient": {"id": "2"}, "postback": {"payload": "GO"}}]}],
    }).encode()
    handler = MagicMock(return_value="spam")
    webhook.set_reply_handler(handler)

    response = client.post("/webhook", content=body, headers={"X-Hub-Signature": "sha1=forged"})

    assert response.json()["state"] == "configured"
    handler.assert_not_called()
    http.post.assert_not_called()


def test_failed_delivery_does_not_stop_later_replies(client, http):
    body = json.dumps({
        "object": "page",
        "entry": [{"messaging": [
            {"sender": {"id": "1"}, "recipient": {"id": "2"}, "message": {"text": "a"}},
            {"sender": {"id": "3"}, "recipient": {"id": "2"}, "message": {"text": "b"}},
        ]}],
    }).encode()
    http.post.side_effect = [UpstreamFetchFailed("down"), HttpResponse(status_code=200, content=b"{}")]
    seen = []

    def handler(result, message):
        seen.append(message.text)
        return f"re: {message.text}"

    webhook.set_reply_handler(handler)

    response = client.post("/webhook", content=body, headers=signed_headers(body))

    assert response.status_code == 200
    assert response.json()["state"] == "claimed"
    assert seen == ["a", "b"]
    assert http.post.call_count == 2
    assert http.post.call_args.args[2]["recipient"] == {"id": "3"}
