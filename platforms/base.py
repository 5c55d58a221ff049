"""Base platform driver interface."""
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional, Mapping, List, Tuple, Type, Union
from models.attachments import Attachment
from models.events import DriverEvent
from models.messages import IncomingMessage, OutgoingMessage, Question, Answer, User
from models.templates import Template
from platforms.exceptions import MalformedPayload
from platforms.http import HttpClient, HttpResponse, HttpxClient

Reply = Union[str, Question, Template, OutgoingMessage]


@dataclass(frozen=True)
class RequestContext:
    """
    Everything a driver knows about one webhook call.

    Built by ``PlatformDriver.build_request`` and passed explicitly to the
    classifier and extractor, so a driver instance can serve concurrent
    requests.
    """
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)
    # Platform specific part of the payload the driver works on
    event: Dict[str, Any] = field(default_factory=dict)


class OutgoingKind(Enum):
    """Kinds of reply a payload builder distinguishes, in resolution order."""
    QUESTION = "question"
    TEMPLATE = "template"
    ATTACHMENT = "attachment"
    OUTGOING_TEXT = "outgoing_text"
    TEXT = "text"


def classify_outgoing(
    message: Reply,
    templates: Tuple[Type[Template], ...] = (),
    attachments: Tuple[Type[Attachment], ...] = ()
) -> OutgoingKind:
    """
    Decide which serialization branch a reply takes.

    Templates and attachments only count when their exact class is
    registered with the driver.
    """
    if isinstance(message, Question):
        return OutgoingKind.QUESTION
    if type(message) in templates:
        return OutgoingKind.TEMPLATE
    if isinstance(message, OutgoingMessage):
        if message.attachment is not None and type(message.attachment) in attachments:
            return OutgoingKind.ATTACHMENT
        return OutgoingKind.OUTGOING_TEXT
    return OutgoingKind.TEXT


def reply_text(message: Reply) -> str:
    """Plain text of a reply; values without text give an empty string."""
    if isinstance(message, str):
        return message
    text = getattr(message, "text", "")
    return text if isinstance(text, str) else ""


def deep_merge(base: Dict[str, Any], override: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Recursively merge ``override`` into a copy of ``base``.

    Nested dicts are merged key by key; any other colliding value is
    replaced by the one from ``override``.
    """
    merged = dict(base)
    for key, value in (override or {}).items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class PlatformDriver(ABC):
    """Abstract base class for platform drivers."""

    NAME = ""

    def __init__(self, http: Optional[HttpClient] = None):
        self.http = http if http is not None else HttpxClient()

    def build_request(self, body: Union[bytes, str], headers: Optional[Mapping[str, str]] = None) -> RequestContext:
        """
        Decode a raw webhook request.

        Raises:
            MalformedPayload: if the body is not a JSON object
        """
        if isinstance(body, str):
            body = body.encode()

        try:
            payload = json.loads(body) if body else {}
        except ValueError as e:
            raise MalformedPayload(f"Undecodable webhook body: {e}") from e

        if not isinstance(payload, dict):
            raise MalformedPayload("Webhook body must be a JSON object")

        return RequestContext(
            body=body,
            headers=dict(headers or {}),
            payload=payload,
            event=self.extract_event_data(payload)
        )

    @abstractmethod
    def extract_event_data(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Pick the part of the payload the driver inspects."""
        pass

    @abstractmethod
    def matches_request(self, context: RequestContext) -> bool:
        """Whether this driver should claim the request."""
        pass

    def has_matching_event(self, context: RequestContext) -> Optional[DriverEvent]:
        """Non-message event carried by the request, if any."""
        return None

    @abstractmethod
    def get_messages(self, context: RequestContext) -> List[IncomingMessage]:
        """
        Extract chat messages.

        Always returns at least one message; entries without content
        yield ``IncomingMessage.empty()``.
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        pass

    @abstractmethod
    def build_service_payload(
        self,
        message: Reply,
        matching_message: IncomingMessage,
        additional_parameters: Optional[Dict[str, Any]] = None,
        event: Optional[DriverEvent] = None
    ) -> Dict[str, Any]:
        """
        Convert a reply to the platform wire payload.

        Args:
            message: Reply value
            matching_message: Message being answered
            additional_parameters: Fields merged into the payload
            event: Event of the current exchange, if any

        Returns:
            Payload ready for ``send_payload``
        """
        pass

    @abstractmethod
    def send_payload(self, payload: Dict[str, Any]) -> Optional[HttpResponse]:
        """Deliver a built payload; None when nothing was sent."""
        pass

    @abstractmethod
    def send_request(
        self,
        endpoint: str,
        parameters: Dict[str, Any],
        matching_message: IncomingMessage
    ) -> HttpResponse:
        """Low-level call to any platform API endpoint."""
        pass

    def get_conversation_answer(self, message: IncomingMessage) -> Answer:
        return Answer.create(message.text, message)

    def get_user(self, matching_message: IncomingMessage) -> User:
        return User(id=matching_message.sender)

    def types(self, matching_message: IncomingMessage) -> Optional[HttpResponse]:
        """Show a typing indicator; platforms without one do nothing."""
        return None

    def is_bot(self) -> bool:
        return False
