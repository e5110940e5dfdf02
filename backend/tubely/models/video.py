"""
Video Pydantic models for Tubely.

This module defines the Video record stored in MongoDB, the locator that
points at an uploaded video object, and the aspect ratio classes used to
prefix object keys.

Locators have two persisted forms. The legacy form is a single string
``"{bucket},{key}"`` kept in ``Video.video_url``; decoding splits on the first
comma, so neither part may contain a comma when encoding. The structured form
keeps bucket and key as separate fields in ``Video.video_locator``.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


LEGACY_LOCATOR_SEPARATOR = ","


# =============================================================================
# ENUMS
# =============================================================================


class AspectRatio(str, Enum):
    """
    Aspect ratio class of an uploaded video.

    Only the key prefix of a class is persisted (inside the object key); the
    class itself is derived at upload time and never stored on its own.
    """

    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    OTHER = "other"

    @property
    def key_prefix(self) -> str:
        """Path segment used in front of object keys for this class."""
        return _KEY_PREFIXES[self]


_KEY_PREFIXES: dict[AspectRatio, str] = {
    AspectRatio.LANDSCAPE: "landscape",
    AspectRatio.PORTRAIT: "portrait",
    AspectRatio.OTHER: "other",
}


# =============================================================================
# MODELS
# =============================================================================


class VideoLocator(BaseModel):
    """Bucket and key of an uploaded video object."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(..., min_length=1, description="Bucket holding the object")
    key: str = Field(..., min_length=1, description="Object key inside the bucket")

    def to_legacy_string(self) -> str:
        """
        Encode as ``"{bucket},{key}"``.

        Raises:
            ValueError: If bucket or key contains a comma.
        """
        if LEGACY_LOCATOR_SEPARATOR in self.bucket or LEGACY_LOCATOR_SEPARATOR in self.key:
            raise ValueError(
                f"cannot encode locator with a comma in bucket or key: {self.bucket!r}, {self.key!r}"
            )
        return f"{self.bucket}{LEGACY_LOCATOR_SEPARATOR}{self.key}"

    @classmethod
    def from_legacy_string(cls, raw: str) -> "VideoLocator":
        """
        Decode a ``"{bucket},{key}"`` string, splitting on the first comma.

        Raises:
            ValueError: If the string has no comma or an empty bucket or key.
        """
        bucket, separator, key = raw.partition(LEGACY_LOCATOR_SEPARATOR)
        if not separator or not bucket or not key:
            raise ValueError(f"malformed video locator: {raw!r}")
        return cls(bucket=bucket, key=key)


class VideoCreate(BaseModel):
    """Request body for creating a draft video."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)


class Video(BaseModel):
    """
    Video record owned by a single user.

    Attributes:
        id: Video identifier (stored as the MongoDB ``_id`` string)
        user_id: Identifier of the owning user
        title: Display title
        description: Free-form description
        thumbnail_url: Public URL of the uploaded thumbnail, if any
        video_url: Legacy ``"bucket,key"`` locator, or a presigned URL in a
            signed view
        video_locator: Structured locator, if written in that format
        created_at: Creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    id: UUID = Field(default_factory=uuid4, validation_alias=AliasChoices("_id", "id"))
    user_id: UUID
    title: str = Field(default="", max_length=255)
    description: str = Field(default="", max_length=5000)
    thumbnail_url: str | None = None
    video_url: str | None = None
    video_locator: VideoLocator | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def has_locator(self) -> bool:
        return self.video_locator is not None or bool(self.video_url)

    def to_document(self) -> dict[str, Any]:
        """Serialize for MongoDB with string identifiers."""
        document = self.model_dump(mode="python")
        document["_id"] = str(document.pop("id"))
        document["user_id"] = str(self.user_id)
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Video":
        return cls.model_validate(document)
