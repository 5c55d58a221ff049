"""Tests for the driver dispatcher."""
import json
import pytest
from unittest.mock import MagicMock
from core.dispatcher import DriverManager, DriverState, default_drivers
from models.messages import Question, Button
from platforms.exceptions import MalformedPayload, NotConfigured
from platforms.facebook import FacebookDriver, FacebookVideoDriver
from platforms.http import HttpResponse
from platforms.telegram import TelegramDriver


def facebook_body(*messaging) -> bytes:
    return json.dumps({"object": "page", "entry": [{"messaging": list(messaging)}]}).encode()


@pytest.fixture
def http():
    client = MagicMock()
    client.post.return_value = HttpResponse(status_code=200, content=b"{}")
    return client


@pytest.fixture
def manager(http):
    return DriverManager([
        FacebookDriver(token="fb", app_secret="", http=http),
        FacebookVideoDriver(token="fb", app_secret="", http=http),
        TelegramDriver(token="tg", http=http),
    ])


def test_matched_facebook_message(manager):
    result = manager.dispatch(facebook_body(
        {"sender": {"id": "1"}, "recipient": {"id": "2"}, "message": {"text": "hi"}}
    ))
    assert result.state is DriverState.MATCHED
    assert result.driver_name == "Facebook"
    assert [m.text for m in result.messages] == ["hi"]
    assert result.event is None


def test_matched_telegram_message(manager):
    body = json.dumps({"message": {"from": {"id": 1}, "chat": {"id": 2}, "text": "hi"}})
    result = manager.dispatch(body)
    assert result.state is DriverState.MATCHED
    assert result.driver_name == "Telegram"


def test_event_only(manager):
    result = manager.dispatch(facebook_body(
        {"sender": {"id": "1"}, "recipient": {"id": "2"}, "postback": {"payload": "GET_STARTED"}}
    ))
    assert result.state is DriverState.EVENT_ONLY
    assert result.driver_name == "Facebook"
    assert result.event.name == "messaging_postbacks"
    assert result.messages == []


def test_nothing_matches(manager):
    result = manager.dispatch(b'{"hello": "world"}')
    assert result.state is DriverState.CONFIGURED
    assert result.driver is None
    assert not result.matched


def test_unconfigured_drivers_are_skipped(http):
    manager = DriverManager([FacebookDriver(token="", http=http)])
    result = manager.dispatch(facebook_body({"sender": {"id": "1"}, "message": {"text": "hi"}}))
    assert result.state is DriverState.UNCONFIGURED


def test_negative_probe_has_no_side_effects(manager, http):
    manager.dispatch(b'{"hello": "world"}')
    http.get.assert_not_called()
    http.post.assert_not_called()


def test_malformed_body(manager):
    with pytest.raises(MalformedPayload):
        manager.dispatch(b"{oops")


def test_reply_claims_request(manager, http):
    result = manager.dispatch(facebook_body(
        {"sender": {"id": "1"}, "recipient": {"id": "2"}, "message": {"text": "hi"}}
    ))
    question = Question.create("Sure?").add_button(Button(text="Yes", value="y"))

    claimed = manager.reply(result, question)

    assert claimed.state is DriverState.CLAIMED
    assert result.state is DriverState.MATCHED
    assert claimed.payload["recipient"] == {"id": "1"}
    assert claimed.payload["message"]["quick_replies"][0]["payload"] == "y"
    http.post.assert_called_once()


def test_reply_to_event_uses_event_sender(manager):
    result = manager.dispatch(facebook_body(
        {"sender": {"id": "77"}, "recipient": {"id": "2"}, "postback": {"payload": "GET_STARTED"}}
    ))
    claimed = manager.reply(result, "Welcome!")
    assert claimed.payload["recipient"] == {"id": "77"}
    assert claimed.payload["message"] == {"text": "Welcome!"}


def test_reply_without_match(manager):
    result = manager.dispatch(b'{"hello": "world"}')
    with pytest.raises(NotConfigured):
        manager.reply(result, "hi")


def test_default_drivers_read_config(monkeypatch, http):
    monkeypatch.setattr("config.FACEBOOK_TOKEN", "from-env")
    monkeypatch.setattr("config.TELEGRAM_TOKEN", "")
    manager = DriverManager(default_drivers(http))
    configured = [driver.NAME for driver in manager.configured_drivers()]
    assert "Facebook" in configured
    assert "Telegram" not in configured
    assert manager.get_driver("telegramvideo").NAME == "TelegramVideo"


def test_forged_signature_blocks_event_only(http):
    manager = DriverManager([FacebookDriver(token="fb", app_secret="secret", http=http)])
    body = facebook_body({"sender": {"id": "victim"}, "recipient": {"id": "2"}, "postback": {"payload": "GO"}})

    result = manager.dispatch(body, {"X-Hub-Signature": "sha1=forged"})

    assert result.state is DriverState.CONFIGURED
    assert result.event is None
    with pytest.raises(NotConfigured):
        manager.reply(result, "spam")
    http.post.assert_not_called()
