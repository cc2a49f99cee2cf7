"""Upload ingestion: validate, store, probe, persist, schedule thumbnail.

Step order is fixed. Validation happens before any write; a failure after
the video has been stored deletes it again before the error propagates, so
a metadata record exists only for a fully ingested video.
"""

import html
import logging
import os
import uuid
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Optional

from gooji.config import UploadConfig
from gooji.errors import StorageError, ValidationError, VideoError
from gooji.schemas.video import UploadHeader, UploadMetadata, VideoRecord
from gooji.services.media_inspector import MediaInspector
from gooji.services.metadata_store import MetadataStore
from gooji.services.video_store import VideoStore
from gooji.workers.thumbnail_tasks import ThumbnailQueue

logger = logging.getLogger(__name__)

DEFAULT_TAGS = ("ojibwe", "language", "culture")

# Number of leading bytes inspected for container signatures
MAGIC_HEADER_SIZE = 12
EBML_MAGIC = b"\x1a\x45\xdf\xa3"


def sanitize_input(value: Optional[str], max_length: int = 200) -> str:
    """Trim, cap at ``max_length`` characters, then HTML-escape."""
    value = (value or "").strip()
    if len(value) > max_length:
        value = value[:max_length]
    return html.escape(value, quote=True)


def sanitize_tags(
    tags: Optional[Iterable[str]],
    max_length: int = 50,
    default_tags: Iterable[str] = DEFAULT_TAGS,
) -> list[str]:
    """Sanitize each tag, drop empty ones, fall back to the default set."""
    sanitized = [sanitize_input(tag, max_length) for tag in (tags or [])]
    sanitized = [tag for tag in sanitized if tag]
    if not sanitized:
        return list(default_tags)
    return sanitized


def _is_iso_bmff(head: bytes) -> bool:
    return len(head) >= 8 and head[4:8] == b"ftyp"


def _is_ebml(head: bytes) -> bool:
    return head[:4] == EBML_MAGIC


def _is_riff(head: bytes) -> bool:
    return head[:4] == b"RIFF"


# Expected container signature per extension and per declared MIME type
SIGNATURES: dict[str, Callable[[bytes], bool]] = {
    ".mp4": _is_iso_bmff,
    ".mov": _is_iso_bmff,
    ".webm": _is_ebml,
    ".avi": _is_riff,
    "video/mp4": _is_iso_bmff,
    "video/mov": _is_iso_bmff,
    "video/webm": _is_ebml,
    "video/avi": _is_riff,
}


def has_video_signature(head: bytes, *formats: str) -> bool:
    """Check the first bytes of a file against container signatures.

    MP4/MOV carry ``ftyp`` at offset 4, WebM starts with the EBML header and
    AVI with ``RIFF``. Each given extension or MIME type with a known
    signature must match; with none known, any video signature is accepted.
    """
    checks = [SIGNATURES[f] for f in formats if f in SIGNATURES]
    if not checks:
        return _is_iso_bmff(head) or _is_ebml(head) or _is_riff(head)
    return all(check(head) for check in checks)


def _new_video_id() -> str:
    return uuid.uuid4().hex


class IngestionService:
    """Orchestrates the upload workflow end to end."""

    def __init__(
        self,
        video_store: VideoStore,
        metadata_store: MetadataStore,
        inspector: MediaInspector,
        thumbnail_queue: ThumbnailQueue,
        config: Optional[UploadConfig] = None,
        id_factory: Callable[[], str] = _new_video_id,
    ):
        self.video_store = video_store
        self.metadata_store = metadata_store
        self.inspector = inspector
        self.thumbnail_queue = thumbnail_queue
        self.config = config or UploadConfig()
        self.id_factory = id_factory

    def process_upload(
        self,
        stream: BinaryIO,
        header: UploadHeader,
        metadata: Optional[UploadMetadata] = None,
    ) -> VideoRecord:
        """Ingest one uploaded video.

        Args:
            stream: Seekable binary file object positioned at the start.
            header: Filename, declared content type and size of the upload.
            metadata: Title, description and tags supplied by the user.

        Returns:
            The persisted VideoRecord. Its thumbnail may not exist yet.

        Raises:
            ValidationError: Upload rejected; nothing was written.
            StorageError: Video or metadata could not be written.
            InspectionError: The video could not be probed.
        """
        metadata = metadata or UploadMetadata()

        # Step 1: validate before touching storage
        ext = self.validate_upload(stream, header)

        # Step 2: identifier and stored filename
        video_id = self.id_factory()
        filename = f"{video_id}{ext}"

        # Step 3: store raw bytes
        video_path = self.video_store.save(stream, filename)

        # Step 4: probe
        try:
            info = self.inspector.probe(video_path)
        except VideoError:
            self._rollback(video_id, "probe failure")
            raise

        # Step 5: build sanitized record
        record = VideoRecord(
            id=video_id,
            filename=filename,
            title=sanitize_input(metadata.title, self.config.max_text_length),
            description=sanitize_input(metadata.description, self.config.max_text_length),
            duration=info.duration,
            tags=sanitize_tags(metadata.tags, self.config.max_tag_length, self.config.default_tags),
        )

        # Step 6: persist metadata
        try:
            self.metadata_store.save(record)
        except VideoError:
            self._rollback(video_id, "metadata failure")
            raise
        except OSError as e:
            self._rollback(video_id, "metadata failure")
            raise StorageError("Failed to save video metadata") from e

        # Step 7: thumbnail in the background, outcome only logged
        self.thumbnail_queue.submit(video_id, lambda: self.generate_thumbnail(video_id))

        logger.info(f"Successfully processed video upload: {filename} ({info.duration:.2f}s)")
        return record

    def validate_upload(self, stream: BinaryIO, header: UploadHeader) -> str:
        """Check size, content type, extension and magic bytes.

        The stream is rewound to the start afterwards.

        Returns:
            The lower-cased file extension, including the dot.

        Raises:
            ValidationError: If any check fails.
        """
        size = header.size if header.size is not None else _measure(stream)
        if size > self.config.max_size:
            raise ValidationError(
                f"File size {size} exceeds maximum allowed size {self.config.max_size}"
            )

        content_type = (header.content_type or "").split(";", 1)[0].strip().lower()
        if content_type not in self.config.allowed_types:
            raise ValidationError(f"Content type {content_type or '(none)'} is not allowed")

        ext = os.path.splitext(header.filename or "")[1].lower()
        if ext not in self.config.allowed_extensions:
            raise ValidationError(f"File extension {ext or '(none)'} is not allowed")

        try:
            head = stream.read(MAGIC_HEADER_SIZE)
            stream.seek(0)
        except (OSError, ValueError) as e:
            raise ValidationError("Failed to read file header") from e

        if not has_video_signature(head, ext, content_type):
            raise ValidationError("File content does not match its declared video format")

        return ext

    def generate_thumbnail(self, video_id: str, timestamp: Optional[float] = None) -> Path:
        """Extract the thumbnail for a stored video.

        Runs synchronously; the upload path calls it through the thumbnail
        queue and the CLI calls it directly to regenerate a thumbnail.

        Returns:
            Path of the written JPEG.
        """
        if timestamp is None:
            timestamp = self.config.thumbnail_timestamp
        video_path = self.video_store.video_path(video_id)
        thumbnail_path = self.video_store.thumbnail_path(video_id)
        thumbnail_path.parent.mkdir(parents=True, exist_ok=True)
        self.inspector.thumbnail(video_path, thumbnail_path, timestamp)
        return thumbnail_path

    def _rollback(self, video_id: str, reason: str) -> None:
        """Best-effort removal of everything stored for ``video_id``."""
        try:
            result = self.video_store.delete(video_id)
        except Exception as e:
            logger.error(f"Rollback after {reason} failed for {video_id}: {e}")
            return

        if result.complete:
            logger.info(f"Rolled back upload {video_id} after {reason}")
        else:
            logger.error(
                f"Rollback after {reason} incomplete for {video_id}: {', '.join(result.failures)}"
            )


def _measure(stream: BinaryIO) -> int:
    """Size of a seekable stream, leaving its position unchanged."""
    try:
        position = stream.tell()
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(position)
    except (OSError, ValueError) as e:
        raise ValidationError("Unable to determine upload size") from e
    return size
