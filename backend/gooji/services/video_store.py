"""Raw video and thumbnail files on the local filesystem.

Videos live at ``<uploads>/<id><ext>`` and thumbnails at
``<thumbnails>/<id>.jpg``. Callers may address a video either by its bare
id or by its stored filename.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO, Iterable

from gooji.config import StorageConfig
from gooji.errors import NotFoundError, SecurityError, StorageError, ValidationError
from gooji.schemas.video import ArtifactOutcome, DeleteResult
from gooji.services.metadata_store import MetadataStore
from gooji.services.path_guard import validate_path

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".mp4", ".webm", ".avi", ".mov")


class VideoStore:
    """Store, locate and remove the files belonging to a video."""

    # Copy buffer for streaming uploads to disk
    BUFFER_SIZE = 32 * 1024

    def __init__(
        self,
        storage: StorageConfig,
        metadata_store: MetadataStore,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ):
        self.uploads_dir = Path(storage.uploads)
        self.thumbnails_dir = Path(storage.thumbnails)
        self.metadata_store = metadata_store
        self.extensions = tuple(e.lower() for e in extensions)

    def save(self, stream: BinaryIO, filename: str) -> Path:
        """Stream ``stream`` into ``<uploads>/<filename>``.

        The source is copied in fixed-size chunks and never loaded whole.
        A partially written file is removed if the copy fails.

        Returns:
            Absolute path of the stored video.

        Raises:
            SecurityError: If the filename escapes the uploads directory.
            StorageError: If reading the stream or writing the file fails.
        """
        self._check_id(filename)
        target = validate_path(self.uploads_dir / filename, self.uploads_dir)

        try:
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as dst:
                shutil.copyfileobj(stream, dst, self.BUFFER_SIZE)
        except (OSError, ValueError) as e:
            # ValueError covers reads from a closed upload stream
            logger.error(f"Failed to write video file {target}: {e}")
            self._discard_partial(target)
            raise StorageError("Failed to save video file") from e
        except BaseException:
            self._discard_partial(target)
            raise

        logger.debug(f"Saved video file: {target}")
        return target

    def exists(self, video_id: str) -> bool:
        """True if a stored video exists; False on any invalid id."""
        try:
            return any(p.is_file() for p in self._candidate_paths(video_id))
        except (SecurityError, ValidationError):
            return False

    def video_path(self, video_id: str) -> Path:
        """Locate the stored video for an id or filename.

        Raises:
            NotFoundError: If no stored video exists.
            SecurityError: If the id is unsafe.
        """
        for path in self._candidate_paths(video_id):
            if path.is_file():
                return path
        raise NotFoundError(f"Video not found: {video_id}")

    def thumbnail_path(self, video_id: str) -> Path:
        """Validated thumbnail location for a video; the file may not exist."""
        self._check_id(video_id)
        stem = self.stem(video_id)
        return validate_path(self.thumbnails_dir / f"{stem}.jpg", self.thumbnails_dir)

    def delete(self, video_id: str) -> DeleteResult:
        """Remove the video, its metadata and its thumbnail.

        Each removal is attempted independently; a missing file counts as
        already removed and failures are logged rather than raised.
        """
        if not video_id:
            raise ValidationError("Video ID is required")

        result = DeleteResult(id=video_id)
        stem = self.stem(video_id)

        # Video file
        try:
            candidates = self._candidate_paths(video_id)
        except SecurityError as e:
            logger.error(f"Refusing to delete video for unsafe id {video_id!r}: {e}")
            result.video = ArtifactOutcome.SKIPPED
        else:
            result.video = self._remove_files(candidates, "video")

        # Metadata file
        try:
            self._check_id(video_id)
            removed = self.metadata_store.delete(stem)
            result.metadata = ArtifactOutcome.DELETED if removed else ArtifactOutcome.ABSENT
        except SecurityError as e:
            logger.error(f"Refusing to delete metadata for unsafe id {video_id!r}: {e}")
            result.metadata = ArtifactOutcome.SKIPPED
        except OSError as e:
            logger.error(f"Failed to delete metadata for {video_id}: {e}")
            result.metadata = ArtifactOutcome.FAILED

        # Thumbnail file
        try:
            thumbnail = self.thumbnail_path(video_id)
        except SecurityError as e:
            logger.error(f"Refusing to delete thumbnail for unsafe id {video_id!r}: {e}")
            result.thumbnail = ArtifactOutcome.SKIPPED
        else:
            result.thumbnail = self._remove_files([thumbnail], "thumbnail")

        return result

    def stem(self, video_id: str) -> str:
        """Strip a known video extension, leaving the bare id."""
        root, ext = os.path.splitext(video_id)
        if ext.lower() in self.extensions:
            return root
        return video_id

    def _check_id(self, video_id: str) -> None:
        if not video_id:
            raise ValidationError("Video ID is required")
        if "/" in video_id or os.sep in video_id:
            raise SecurityError("Video ID cannot contain path separators")

    def _candidate_paths(self, video_id: str) -> list[Path]:
        self._check_id(video_id)
        _, ext = os.path.splitext(video_id)
        if ext.lower() in self.extensions:
            names = [video_id]
        else:
            names = [f"{video_id}{e}" for e in self.extensions]
        return [validate_path(self.uploads_dir / name, self.uploads_dir) for name in names]

    def _discard_partial(self, target: Path) -> None:
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove partial file {target}: {e}")

    def _remove_files(self, paths: list[Path], label: str) -> ArtifactOutcome:
        outcome = ArtifactOutcome.ABSENT
        for path in paths:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.error(f"Failed to delete {label} file {path}: {e}")
                return ArtifactOutcome.FAILED
            logger.debug(f"Deleted {label} file: {path}")
            outcome = ArtifactOutcome.DELETED
        return outcome
