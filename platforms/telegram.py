"""Telegram platform drivers."""
import logging
from typing import Dict, Any, Optional, List, Type
import config
from models.attachments import Attachment, Image, Audio, Video, File
from models.events import DriverEvent, GenericEvent
from models.messages import IncomingMessage, Question, Answer, User
from platforms.base import (
    PlatformDriver, RequestContext, Reply, OutgoingKind, classify_outgoing, deep_merge, reply_text
)
from platforms.exceptions import NotConfigured, UpstreamFetchFailed
from platforms.http import HttpClient, HttpResponse

logger = logging.getLogger(__name__)

# Service messages Telegram sends instead of chat text
SERVICE_EVENTS = (
    "new_chat_members",
    "left_chat_member",
    "new_chat_title",
    "new_chat_photo",
    "group_chat_created",
    "supergroup_chat_created",
    "channel_chat_created",
    "pinned_message",
)

# Attachment class -> (send method, parameter name)
SEND_METHODS = {
    Image: ("sendPhoto", "photo"),
    Video: ("sendVideo", "video"),
    Audio: ("sendAudio", "audio"),
    File: ("sendDocument", "document"),
}


class TelegramDriver(PlatformDriver):
    """Telegram bot driver for text messages and inline keyboard replies."""

    NAME = "Telegram"

    supported_attachments = tuple(SEND_METHODS)

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: Optional[str] = None,
        http: Optional[HttpClient] = None
    ):
        """Initialize Telegram driver; unset arguments come from config."""
        super().__init__(http)
        self.token = token if token is not None else config.TELEGRAM_TOKEN
        self.api_url = api_url or config.TELEGRAM_API_URL
        if not self.api_url.endswith("/"):
            self.api_url += "/"

    def method_url(self, method: str) -> str:
        return f"{self.api_url}bot{self.token}/{method}"

    def extract_event_data(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Callback query or message of an update.

        Telegram update format:
        {
            "update_id": 1,
            "message": {
                "message_id": 7,
                "from": {"id": 100, "first_name": "Ada"},
                "chat": {"id": 200},
                "text": "hi"
            }
        }
        """
        for key in ("callback_query", "message", "edited_message"):
            value = payload.get(key)
            if isinstance(value, dict):
                return value
        return {}

    @staticmethod
    def from_id(event: Dict[str, Any]) -> str:
        sender = event.get("from")
        if isinstance(sender, dict) and sender.get("id") is not None:
            return str(sender["id"])
        return ""

    @staticmethod
    def chat_id(event: Dict[str, Any]) -> str:
        # Callback queries carry the chat on the message they belong to
        chat = event.get("chat")
        message = event.get("message")
        if not isinstance(chat, dict) and isinstance(message, dict):
            chat = message.get("chat")
        if isinstance(chat, dict) and chat.get("id") is not None:
            return str(chat["id"])
        return ""

    @staticmethod
    def is_callback(context: RequestContext) -> bool:
        return isinstance(context.payload.get("callback_query"), dict)

    def content(self, context: RequestContext) -> str:
        """Chat text, or the button value for callback queries."""
        key = "data" if self.is_callback(context) else "text"
        value = context.event.get(key)
        return value if isinstance(value, str) else ""

    def matches_request(self, context: RequestContext) -> bool:
        return bool(self.from_id(context.event)) and bool(self.content(context))

    def has_matching_event(self, context: RequestContext) -> Optional[DriverEvent]:
        if self.is_callback(context):
            return None
        for key in SERVICE_EVENTS:
            if key in context.event:
                return GenericEvent(payload=dict(context.event), event_name=key)
        return None

    def get_messages(self, context: RequestContext) -> List[IncomingMessage]:
        text = self.content(context)
        if not text:
            return [IncomingMessage.empty()]

        return [IncomingMessage(
            text=text,
            sender=self.from_id(context.event),
            recipient=self.chat_id(context.event),
            payload=context.event
        )]

    def get_conversation_answer(self, message: IncomingMessage) -> Answer:
        data = message.payload.get("data")
        if isinstance(data, str) and "message" in message.payload:
            return Answer(text=message.text, message=message, interactive=True, value=data)
        return Answer.create(message.text, message)

    def convert_question(self, question: Question) -> Dict[str, Any]:
        """Convert a Question into an inline keyboard, one button per row."""
        keyboard = []
        for button in question.buttons:
            key = {"text": button.text, "callback_data": button.value}
            key.update(button.additional)
            keyboard.append([key])

        return {"inline_keyboard": keyboard}

    def build_service_payload(
        self,
        message: Reply,
        matching_message: IncomingMessage,
        additional_parameters: Optional[Dict[str, Any]] = None,
        event: Optional[DriverEvent] = None
    ) -> Dict[str, Any]:
        """
        Build a Bot API call.

        The returned payload names the API method under "method", which is
        also the format Telegram accepts as a direct webhook reply.
        """
        chat_id = self.chat_id(event.payload) if event is not None else matching_message.recipient

        parameters = deep_merge({
            "method": "sendMessage",
            "chat_id": chat_id,
        }, additional_parameters)

        kind = classify_outgoing(message, (), self.supported_attachments)
        if kind is OutgoingKind.QUESTION:
            parameters["text"] = message.text
            parameters["reply_markup"] = self.convert_question(message)
        elif kind is OutgoingKind.ATTACHMENT:
            method, field = SEND_METHODS[type(message.attachment)]
            parameters["method"] = method
            parameters[field] = message.attachment.url
            if message.text:
                parameters["caption"] = message.text
        else:
            parameters["text"] = reply_text(message)

        return parameters

    def send_payload(self, payload: Dict[str, Any]) -> Optional[HttpResponse]:
        """
        Call the Bot API method named in the payload.

        A sendMessage without text is rejected by Telegram, so it is skipped
        and None is returned. Templates without text end up here.
        """
        if not self.is_configured():
            raise NotConfigured("TELEGRAM_TOKEN is not set")
        body = dict(payload)
        method = body.pop("method", "sendMessage")
        if method == "sendMessage" and not body.get("text"):
            logger.warning(f"[Telegram] Skipping empty message to chat {body.get('chat_id')}")
            return None
        return self.http.post(self.method_url(method), {}, body)

    def send_request(
        self,
        endpoint: str,
        parameters: Dict[str, Any],
        matching_message: IncomingMessage
    ) -> HttpResponse:
        parameters = deep_merge({"chat_id": matching_message.recipient}, parameters)
        return self.http.post(self.method_url(endpoint), {}, parameters)

    def types(self, matching_message: IncomingMessage) -> HttpResponse:
        return self.http.post(self.method_url("sendChatAction"), {}, {
            "chat_id": matching_message.recipient,
            "action": "typing",
        })

    def get_user(self, matching_message: IncomingMessage) -> User:
        """User from the message's "from" block; no API call needed."""
        sender = matching_message.payload.get("from")
        if not isinstance(sender, dict):
            sender = {}
        return User(
            id=matching_message.sender,
            first_name=sender.get("first_name"),
            last_name=sender.get("last_name"),
            username=sender.get("username")
        )

    def is_configured(self) -> bool:
        return bool(self.token)


class TelegramAttachmentDriver(TelegramDriver):
    """
    Telegram driver for media messages.

    Subclasses set ATTACHMENT, the update KEY holding the media and the
    IncomingMessage FIELD the resolved attachments go to.
    """

    ATTACHMENT: Type[Attachment] = Attachment
    KEY = ""
    FIELD = ""

    def matches_request(self, context: RequestContext) -> bool:
        return bool(self.from_id(context.event)) and context.event.get(self.KEY) is not None

    def has_matching_event(self, context: RequestContext) -> Optional[DriverEvent]:
        return None

    def get_messages(self, context: RequestContext) -> List[IncomingMessage]:
        if context.event.get(self.KEY) is None:
            return [IncomingMessage.empty()]

        return [IncomingMessage(
            text=self.ATTACHMENT.PATTERN,
            sender=self.from_id(context.event),
            recipient=self.chat_id(context.event),
            payload=context.event,
            **{self.FIELD: self.get_attachments(context.event)}
        )]

    def media(self, event: Dict[str, Any]) -> Dict[str, Any]:
        value = event.get(self.KEY)
        return value if isinstance(value, dict) else {}

    def get_attachments(self, event: Dict[str, Any]) -> List[Attachment]:
        media = self.media(event)
        url = self.get_file_url(media.get("file_id", ""))
        if url is None:
            return []
        return [self.ATTACHMENT(url=url, payload=media)]

    def get_file_url(self, file_id: str) -> Optional[str]:
        """
        Resolve a file id to a download URL via getFile.

        Returns None when the lookup fails.
        """
        if not file_id:
            return None

        try:
            response = self.http.get(self.method_url("getFile"), {"file_id": file_id})
        except UpstreamFetchFailed as e:
            logger.warning(f"[Telegram] getFile for {file_id} failed: {e}")
            return None

        data = response.json()
        result = data.get("result") if isinstance(data, dict) else None
        file_path = result.get("file_path") if isinstance(result, dict) else None
        if not file_path:
            logger.warning(f"[Telegram] getFile for {file_id} returned no file_path")
            return None

        return f"{self.api_url}file/bot{self.token}/{file_path}"


class TelegramPhotoDriver(TelegramAttachmentDriver):
    NAME = "TelegramPhoto"
    ATTACHMENT = Image
    KEY = "photo"
    FIELD = "images"

    def media(self, event: Dict[str, Any]) -> Dict[str, Any]:
        # Photos come in several sizes, largest last
        sizes = event.get(self.KEY)
        if isinstance(sizes, list) and sizes and isinstance(sizes[-1], dict):
            return sizes[-1]
        return {}


class TelegramVideoDriver(TelegramAttachmentDriver):
    NAME = "TelegramVideo"
    ATTACHMENT = Video
    KEY = "video"
    FIELD = "videos"


class TelegramAudioDriver(TelegramAttachmentDriver):
    NAME = "TelegramAudio"
    ATTACHMENT = Audio
    KEY = "audio"
    FIELD = "audio"


class TelegramFileDriver(TelegramAttachmentDriver):
    NAME = "TelegramFile"
    ATTACHMENT = File
    KEY = "document"
    FIELD = "files"
