"""Platform independent message models."""
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from models.attachments import Attachment, Image, Video, Audio, File


class IncomingMessage(BaseModel):
    """Chat message extracted from a webhook entry."""
    model_config = ConfigDict(frozen=True)

    text: str = ""
    sender: str = ""
    recipient: str = ""
    payload: Dict[str, Any] = Field(default_factory=dict, description="Raw messaging entry")
    images: List[Image] = Field(default_factory=list)
    videos: List[Video] = Field(default_factory=list)
    audio: List[Audio] = Field(default_factory=list)
    files: List[File] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "IncomingMessage":
        """Placeholder for entries that carry no chat message."""
        return cls()

    @property
    def attachments(self) -> List[Attachment]:
        """All attachments, images first."""
        return [*self.images, *self.videos, *self.audio, *self.files]

    def is_empty(self) -> bool:
        return not (self.text or self.sender or self.recipient)


class OutgoingMessage(BaseModel):
    """Reply with plain text and an optional attachment."""
    model_config = ConfigDict(frozen=True)

    text: str = ""
    attachment: Optional[Attachment] = None

    @classmethod
    def create(cls, text: str = "", attachment: Optional[Attachment] = None) -> "OutgoingMessage":
        return cls(text=text, attachment=attachment)


class Button(BaseModel):
    """Quick reply button offered with a question."""
    model_config = ConfigDict(frozen=True)

    text: str
    value: str = ""
    image_url: Optional[str] = None
    additional: Dict[str, Any] = Field(default_factory=dict, description="Extra platform fields merged into the reply")


class Question(BaseModel):
    """Text prompt with a list of tappable answers."""
    model_config = ConfigDict(frozen=True)

    text: str
    buttons: List[Button] = Field(default_factory=list)
    fallback: Optional[str] = None
    callback_id: Optional[str] = None

    @classmethod
    def create(cls, text: str) -> "Question":
        return cls(text=text)

    def add_button(self, button: Button) -> "Question":
        """Return a copy of the question with ``button`` appended."""
        return self.model_copy(update={"buttons": [*self.buttons, button]})

    def add_buttons(self, buttons: List[Button]) -> "Question":
        return self.model_copy(update={"buttons": [*self.buttons, *buttons]})


class Answer(BaseModel):
    """User reply to a question."""
    model_config = ConfigDict(frozen=True)

    text: str = ""
    message: Optional[IncomingMessage] = None
    interactive: bool = False
    value: str = ""

    @classmethod
    def create(cls, text: str, message: Optional[IncomingMessage] = None) -> "Answer":
        return cls(text=text, message=message)

    def is_interactive_message_reply(self) -> bool:
        return self.interactive


class User(BaseModel):
    """Chat user as known to the platform."""
    model_config = ConfigDict(frozen=True)

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
