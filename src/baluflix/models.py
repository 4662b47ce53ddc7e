"""Domain models for baluflix."""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, computed_field


class VideoKind(str, Enum):
    """Catalog entry category."""

    VIDEO = "Video"
    SONG = "Song"
    OTHER = "Other"


class UploadedFile(BaseModel):
    """A media file received and stored by the media store."""

    filename: str  # stored name under the uploads directory
    original_name: str
    size: int = 0
    content_type: str = ""


class VideoRecord(BaseModel):
    """Core domain entity representing one catalog entry.

    A record either references an external video (``url``) or owns an
    uploaded media file (``filename``); exactly one of the two is set.
    """

    key: str = Field(default_factory=lambda: uuid.uuid4().hex)  # storage key
    video_id: str  # extracted external id, or the stored filename
    title: str
    description: str = ""
    url: str | None = None
    filename: str | None = None
    original_name: str | None = None
    kind: VideoKind = VideoKind.VIDEO
    thumbnail: str | None = None
    published: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    uploaded_by: str | None = None

    @computed_field
    @property
    def source_ref(self) -> str:
        """Where the media lives: the external URL or the streaming path."""
        if self.url:
            return self.url
        return f"/media/{self.filename}"


class Principal(BaseModel):
    """The authenticated identity derived from a validated token."""

    username: str


class AuthToken(BaseModel):
    """Signed bearer credential issued by a successful login."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
