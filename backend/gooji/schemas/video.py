"""Pydantic schemas for video records and upload input.

``VideoRecord`` is both the on-disk metadata document
(``metadata/<id>.json``) and the JSON returned by the list/get endpoints.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VideoRecord(BaseModel):
    """Persisted metadata for one uploaded video."""

    id: str = Field(description="Unique identifier, also the stored filename stem")
    filename: str = Field(description="Stored filename: id plus original extension")
    title: str = ""
    description: str = ""
    duration: float = Field(default=0.0, description="Duration in seconds, 0 if unknown")
    created_at: datetime = Field(default_factory=_utcnow)
    tags: list[str] = Field(default_factory=list)


class UploadMetadata(BaseModel):
    """User-supplied fields accompanying an upload."""

    title: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)


class UploadHeader(BaseModel):
    """Multipart part headers for the uploaded file."""

    filename: str
    content_type: str = ""
    size: Optional[int] = Field(
        default=None, description="Declared size in bytes; measured from the stream when None"
    )


class UploadResponse(BaseModel):
    id: str
    filename: str


class VideoInfo(BaseModel):
    """Stream information parsed from ffmpeg output."""

    duration: float = 0.0
    width: int = 0
    height: int = 0
    video_codec: str = ""
    audio_codec: str = ""


class ArtifactOutcome(str, Enum):
    """Result of removing one artifact of a video."""

    DELETED = "deleted"
    ABSENT = "absent"
    FAILED = "failed"
    SKIPPED = "skipped"


class DeleteResult(BaseModel):
    """Per-artifact outcome of a three-part delete.

    The public delete operation always reports success; this object keeps
    the detail for logging and the CLI.
    """

    id: str
    video: ArtifactOutcome = ArtifactOutcome.ABSENT
    metadata: ArtifactOutcome = ArtifactOutcome.ABSENT
    thumbnail: ArtifactOutcome = ArtifactOutcome.ABSENT

    @property
    def failures(self) -> list[str]:
        return [
            name
            for name in ("video", "metadata", "thumbnail")
            if getattr(self, name) in (ArtifactOutcome.FAILED, ArtifactOutcome.SKIPPED)
        ]

    @property
    def complete(self) -> bool:
        return not self.failures
