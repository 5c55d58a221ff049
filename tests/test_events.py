"""Tests for event classification."""
import pytest
from models.events import (
    EVENT_TYPES, GenericEvent, MessagingPostbacks, MessagingReads,
    event_from_payload, event_field, event_keys
)

BASE = {"sender": {"id": "1"}, "recipient": {"id": "2"}, "timestamp": 123}


@pytest.mark.parametrize("field,event_class", list(EVENT_TYPES.items()))
def test_registered_fields(field, event_class):
    entry = {**BASE, field: {"foo": "bar"}}
    event = event_from_payload(entry)
    assert type(event) is event_class
    assert event.payload == entry
    assert event.data == {"foo": "bar"}
    assert event_field(event) == field


def test_unknown_field_gives_generic_event():
    event = event_from_payload({**BASE, "standby": [1, 2]})
    assert isinstance(event, GenericEvent)
    assert event.name == "standby"
    assert event.data == [1, 2]


def test_first_non_excluded_key_wins():
    event = event_from_payload({**BASE, "read": {"watermark": 1}, "postback": {"payload": "x"}})
    assert isinstance(event, MessagingReads)


def test_excluded_keys_only():
    entry = {**BASE, "message": {"text": "hi"}}
    assert event_keys(entry) == []
    with pytest.raises(ValueError):
        event_from_payload(entry)


def test_sender_id():
    assert MessagingPostbacks(payload=BASE).sender_id == "1"
    assert MessagingPostbacks(payload={"from": {"id": 5}}).sender_id == "5"
    assert MessagingPostbacks(payload={}).sender_id == ""


def test_event_name():
    assert MessagingPostbacks(payload={}).name == "messaging_postbacks"
