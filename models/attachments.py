"""Attachment models shared by all platforms."""
from typing import Dict, Any, ClassVar
from pydantic import BaseModel, ConfigDict, Field


class Attachment(BaseModel):
    """Base class for media attached to a message."""
    model_config = ConfigDict(frozen=True)

    # Text of an incoming message that only carries this kind of attachment
    PATTERN: ClassVar[str] = "%%%_ATTACHMENT_%%%"

    url: str = Field(..., description="Public URL of the media")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Raw platform payload")

    @classmethod
    def type_name(cls) -> str:
        """Attachment type as used on the wire (lowercased class name)."""
        return cls.__name__.lower()


class Image(Attachment):
    """Image attachment."""
    PATTERN: ClassVar[str] = "%%%_IMAGE_%%%"


class Audio(Attachment):
    """Audio attachment."""
    PATTERN: ClassVar[str] = "%%%_AUDIO_%%%"


class Video(Attachment):
    """Video attachment."""
    PATTERN: ClassVar[str] = "%%%_VIDEO_%%%"


class File(Attachment):
    """Generic file attachment."""
    PATTERN: ClassVar[str] = "%%%_FILE_%%%"
