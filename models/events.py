"""Driver events: platform callbacks that are not chat messages."""
from typing import Dict, Any, ClassVar, Type
from pydantic import BaseModel, ConfigDict, Field

# Keys present on every messaging entry; they never identify an event
EXCLUDED_KEYS = ("sender", "recipient", "timestamp", "message")


class DriverEvent(BaseModel):
    """Base class for events. ``payload`` is the whole messaging entry."""
    model_config = ConfigDict(frozen=True)

    NAME: ClassVar[str] = ""

    payload: Dict[str, Any] = Field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.NAME

    @property
    def sender_id(self) -> str:
        # Telegram names the sender "from"
        sender = self.payload.get("sender") or self.payload.get("from") or {}
        return str(sender.get("id", "")) if isinstance(sender, dict) else ""

    @property
    def data(self) -> Any:
        """Value stored under the key the event was recognized by."""
        return self.payload.get(event_field(self))


class MessagingPostbacks(DriverEvent):
    NAME: ClassVar[str] = "messaging_postbacks"


class MessagingReferrals(DriverEvent):
    NAME: ClassVar[str] = "messaging_referrals"


class MessagingOptins(DriverEvent):
    NAME: ClassVar[str] = "messaging_optins"


class MessagingDeliveries(DriverEvent):
    NAME: ClassVar[str] = "messaging_deliveries"


class MessagingReads(DriverEvent):
    NAME: ClassVar[str] = "messaging_reads"


class MessagingCheckoutUpdates(DriverEvent):
    NAME: ClassVar[str] = "messaging_checkout_updates"


class GenericEvent(DriverEvent):
    """Event without a dedicated class; keeps the original field name."""
    event_name: str

    @property
    def name(self) -> str:
        return self.event_name


# Payload field name -> event class
EVENT_TYPES: Dict[str, Type[DriverEvent]] = {
    "postback": MessagingPostbacks,
    "referral": MessagingReferrals,
    "optin": MessagingOptins,
    "delivery": MessagingDeliveries,
    "read": MessagingReads,
    "checkout_update": MessagingCheckoutUpdates,
}

_FIELD_BY_EVENT = {event_class: field for field, event_class in EVENT_TYPES.items()}


def event_field(event: DriverEvent) -> str:
    """Payload key the event was recognized by."""
    if isinstance(event, GenericEvent):
        return event.event_name
    return _FIELD_BY_EVENT.get(type(event), "")


def event_keys(entry: Dict[str, Any]) -> list:
    """Keys of a messaging entry that may identify an event, in order."""
    return [key for key in entry if key not in EXCLUDED_KEYS]


def event_from_payload(entry: Dict[str, Any]) -> DriverEvent:
    """
    Build the event for a messaging entry.

    The first key outside EXCLUDED_KEYS selects the class; unknown keys
    produce a GenericEvent carrying that key as its name.

    Raises:
        ValueError: if the entry has no candidate key
    """
    keys = event_keys(entry)
    if not keys:
        raise ValueError("Messaging entry carries no event")

    name = keys[0]
    event_class = EVENT_TYPES.get(name)
    if event_class is None:
        return GenericEvent(payload=dict(entry), event_name=name)
    return event_class(payload=dict(entry))
