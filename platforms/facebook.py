"""Facebook Messenger platform driver."""
import logging
from typing import Dict, Any, Optional, List, Type
import config
from middleware.security import validate_signature, get_header
from models.attachments import Attachment, Image, Audio, Video, File
from models.events import DriverEvent, event_keys, event_from_payload
from models.messages import IncomingMessage, Question, Answer, User
from models.templates import ButtonTemplate, GenericTemplate, ListTemplate, ReceiptTemplate
from platforms.base import (
    PlatformDriver, RequestContext, Reply, OutgoingKind, classify_outgoing, deep_merge, reply_text
)
from platforms.exceptions import NotConfigured, UpstreamFetchFailed
from platforms.http import HttpClient, HttpResponse

logger = logging.getLogger(__name__)


class FacebookDriver(PlatformDriver):
    """Facebook Messenger webhook driver."""

    NAME = "Facebook"
    SIGNATURE_HEADER = "X-Hub-Signature"

    templates = (ButtonTemplate, GenericTemplate, ListTemplate, ReceiptTemplate)
    supported_attachments = (Video, Audio, Image, File)

    def __init__(
        self,
        token: Optional[str] = None,
        app_secret: Optional[str] = None,
        verify_token: Optional[str] = None,
        graph_url: Optional[str] = None,
        http: Optional[HttpClient] = None
    ):
        """Initialize Facebook driver; unset arguments come from config."""
        super().__init__(http)
        self.token = token if token is not None else config.FACEBOOK_TOKEN
        self.app_secret = app_secret if app_secret is not None else config.FACEBOOK_APP_SECRET
        self.verify_token = verify_token if verify_token is not None else config.FACEBOOK_VERIFY_TOKEN
        self.graph_url = graph_url or config.FACEBOOK_GRAPH_URL
        if not self.graph_url.endswith("/"):
            self.graph_url += "/"

    def extract_event_data(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        First page entry of the webhook.

        Facebook webhook format:
        {
            "object": "page",
            "entry": [{
                "id": "page_id",
                "messaging": [{
                    "sender": {"id": "user_id"},
                    "recipient": {"id": "page_id"},
                    "message": {"text": "hi"}
                }]
            }]
        }
        """
        entries = payload.get("entry")
        if isinstance(entries, list) and entries and isinstance(entries[0], dict):
            return entries[0]
        return {}

    @staticmethod
    def messaging(context: RequestContext) -> List[Any]:
        messaging = context.event.get("messaging")
        return messaging if isinstance(messaging, list) else []

    @staticmethod
    def message_text(entry: Any) -> str:
        if not isinstance(entry, dict):
            return ""
        message = entry.get("message")
        if not isinstance(message, dict):
            return ""
        text = message.get("text")
        return text if isinstance(text, str) else ""

    @staticmethod
    def participant_id(entry: Dict[str, Any], key: str) -> str:
        participant = entry.get(key)
        if isinstance(participant, dict) and participant.get("id") is not None:
            return str(participant["id"])
        return ""

    def validate_signature(self, context: RequestContext) -> bool:
        signature = get_header(context.headers, self.SIGNATURE_HEADER)
        return validate_signature(self.app_secret, context.body, signature)

    def matches_request(self, context: RequestContext) -> bool:
        """Claim the request if it carries a text message and the signature holds."""
        has_text = any(self.message_text(entry) for entry in self.messaging(context))
        return has_text and self.validate_signature(context)

    def has_matching_event(self, context: RequestContext) -> Optional[DriverEvent]:
        """
        Event of the first messaging entry with a field besides
        sender, recipient, timestamp and message.

        Only one event is surfaced per webhook call.
        """
        if not self.validate_signature(context):
            return None
        for entry in self.messaging(context):
            if isinstance(entry, dict) and event_keys(entry):
                return event_from_payload(entry)
        return None

    def get_messages(self, context: RequestContext) -> List[IncomingMessage]:
        messages = []
        for entry in self.messaging(context):
            text = self.message_text(entry)
            if text:
                messages.append(IncomingMessage(
                    text=text,
                    sender=self.participant_id(entry, "sender"),
                    recipient=self.participant_id(entry, "recipient"),
                    payload=entry
                ))
            else:
                messages.append(IncomingMessage.empty())

        if not messages:
            return [IncomingMessage.empty()]

        return messages

    def get_conversation_answer(self, message: IncomingMessage) -> Answer:
        quick_reply = (message.payload.get("message") or {}).get("quick_reply")
        if isinstance(quick_reply, dict):
            return Answer(
                text=message.text,
                message=message,
                interactive=True,
                value=str(quick_reply.get("payload", ""))
            )
        return Answer.create(message.text, message)

    def convert_question(self, question: Question) -> Dict[str, Any]:
        """Convert a Question into a quick reply message."""
        replies = []
        for button in question.buttons:
            reply = {
                "content_type": "text",
                "title": button.text,
                "payload": button.value,
            }
            if button.image_url:
                reply["image_url"] = button.image_url
            reply.update(button.additional)
            replies.append(reply)

        return {
            "text": question.text,
            "quick_replies": replies,
        }

    def build_service_payload(
        self,
        message: Reply,
        matching_message: IncomingMessage,
        additional_parameters: Optional[Dict[str, Any]] = None,
        event: Optional[DriverEvent] = None
    ) -> Dict[str, Any]:
        # Events may arrive without a chat message, so their sender wins
        recipient = event.sender_id if event is not None else matching_message.sender

        parameters = deep_merge({
            "recipient": {"id": recipient},
            "message": {"text": reply_text(message)},
        }, additional_parameters)

        kind = classify_outgoing(message, self.templates, self.supported_attachments)
        if kind is OutgoingKind.QUESTION:
            parameters["message"] = self.convert_question(message)
        elif kind is OutgoingKind.TEMPLATE:
            parameters["message"] = message.to_dict()
        elif kind is OutgoingKind.ATTACHMENT:
            attachment = message.attachment
            body = dict(parameters["message"])
            body.pop("text", None)
            body["attachment"] = {
                "type": attachment.type_name(),
                "payload": {"url": attachment.url},
            }
            parameters["message"] = body
        elif kind is OutgoingKind.OUTGOING_TEXT:
            parameters["message"] = {**parameters["message"], "text": message.text}

        parameters["access_token"] = self.token
        return parameters

    def send_payload(self, payload: Dict[str, Any]) -> HttpResponse:
        if not self.is_configured():
            raise NotConfigured("FACEBOOK_TOKEN is not set")
        return self.http.post(f"{self.graph_url}me/messages", {}, payload)

    def send_request(
        self,
        endpoint: str,
        parameters: Dict[str, Any],
        matching_message: IncomingMessage
    ) -> HttpResponse:
        parameters = deep_merge({"access_token": self.token}, parameters)
        return self.http.post(f"{self.graph_url}{endpoint}", {}, parameters)

    def types(self, matching_message: IncomingMessage) -> HttpResponse:
        parameters = {
            "recipient": {"id": matching_message.sender},
            "access_token": self.token,
            "sender_action": "typing_on",
        }
        return self.http.post(f"{self.graph_url}me/messages", {}, parameters)

    def get_user(self, matching_message: IncomingMessage) -> User:
        """
        Fetch the sender's profile.

        A failed lookup still yields a User, with empty names.
        """
        sender = matching_message.sender
        profile = {}
        try:
            response = self.http.get(f"{self.graph_url}{sender}", {
                "fields": "first_name,last_name",
                "access_token": self.token,
            })
            data = response.json()
            if isinstance(data, dict):
                profile = data
        except UpstreamFetchFailed as e:
            logger.warning(f"[Facebook] Profile lookup for {sender} failed: {e}")

        return User(
            id=sender,
            first_name=profile.get("first_name"),
            last_name=profile.get("last_name")
        )

    def is_configured(self) -> bool:
        return bool(self.token)

    def verify_webhook(self, mode: str, token: str, challenge: str) -> Optional[str]:
        """
        Verify webhook during setup (GET request).

        Returns:
            Challenge if verified, None otherwise
        """
        if mode == "subscribe" and self.verify_token and token == self.verify_token:
            return challenge
        return None


class FacebookAttachmentDriver(FacebookDriver):
    """
    Facebook driver for messages that only carry media.

    Subclasses set ATTACHMENT; the matching ``message.attachments`` entries
    become the message's attachments and its text is ATTACHMENT.PATTERN.
    """

    ATTACHMENT: Type[Attachment] = Attachment
    # IncomingMessage field that holds this kind of attachment
    FIELD = ""

    def media(self, entry: Any) -> List[Dict[str, Any]]:
        if not isinstance(entry, dict):
            return []
        message = entry.get("message")
        if not isinstance(message, dict):
            return []
        attachments = message.get("attachments")
        if not isinstance(attachments, list):
            return []
        return [
            item for item in attachments
            if isinstance(item, dict) and item.get("type") == self.ATTACHMENT.type_name()
        ]

    def matches_request(self, context: RequestContext) -> bool:
        has_media = any(self.media(entry) for entry in self.messaging(context))
        return has_media and self.validate_signature(context)

    def get_messages(self, context: RequestContext) -> List[IncomingMessage]:
        messages = []
        for entry in self.messaging(context):
            media = self.media(entry)
            if not media:
                messages.append(IncomingMessage.empty())
                continue
            attachments = [
                self.ATTACHMENT(url=str((item.get("payload") or {}).get("url", "")), payload=item)
                for item in media
            ]
            messages.append(IncomingMessage(
                text=self.ATTACHMENT.PATTERN,
                sender=self.participant_id(entry, "sender"),
                recipient=self.participant_id(entry, "recipient"),
                payload=entry,
                **{self.FIELD: attachments}
            ))

        if not messages:
            return [IncomingMessage.empty()]

        return messages


class FacebookImageDriver(FacebookAttachmentDriver):
    NAME = "FacebookImage"
    ATTACHMENT = Image
    FIELD = "images"


class FacebookVideoDriver(FacebookAttachmentDriver):
    NAME = "FacebookVideo"
    ATTACHMENT = Video
    FIELD = "videos"


class FacebookAudioDriver(FacebookAttachmentDriver):
    NAME = "FacebookAudio"
    ATTACHMENT = Audio
    FIELD = "audio"


class FacebookFileDriver(FacebookAttachmentDriver):
    NAME = "FacebookFile"
    ATTACHMENT = File
    FIELD = "files"
