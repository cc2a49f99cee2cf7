"""JSON metadata sidecars, one file per video under the metadata directory."""

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError as SchemaError

from gooji.errors import NotFoundError, SecurityError, StorageError, ValidationError
from gooji.schemas.video import VideoRecord
from gooji.services.path_guard import validate_path

logger = logging.getLogger(__name__)


class MetadataStore:
    """Persist, read, list and delete ``<metadata_dir>/<id>.json`` documents."""

    def __init__(self, metadata_dir: str | Path):
        self.metadata_dir = Path(metadata_dir)

    def path_for(self, video_id: str) -> Path:
        """Return the validated metadata path for a video id.

        Raises:
            ValidationError: If the id is empty.
            SecurityError: If the id escapes the metadata directory.
        """
        if not video_id:
            raise ValidationError("Video ID is required")
        return validate_path(self.metadata_dir / f"{video_id}.json", self.metadata_dir)

    def save(self, record: VideoRecord) -> Path:
        """Write the record, replacing any existing file for the same id.

        The JSON is written to a temporary file in the same directory and
        moved into place, so readers never see a partial document.

        Raises:
            StorageError: If the file cannot be written.
        """
        target = self.path_for(record.id)
        payload = record.model_dump_json(indent=2)

        try:
            self.metadata_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.metadata_dir, prefix=f".{record.id}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Failed to write metadata {target}: {e}")
            raise StorageError("Failed to save video metadata") from e

        logger.debug(f"Saved metadata: {target}")
        return target

    def get(self, video_id: str) -> VideoRecord:
        """Load one record.

        Raises:
            NotFoundError: If no metadata file exists for the id.
            StorageError: If the file exists but cannot be read or parsed.
        """
        path = self.path_for(video_id)
        try:
            data = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise NotFoundError(f"Video not found: {video_id}") from e
        except OSError as e:
            logger.error(f"Failed to read metadata {path}: {e}")
            raise StorageError("Failed to read video metadata") from e

        try:
            return VideoRecord.model_validate_json(data)
        except SchemaError as e:
            logger.error(f"Corrupt metadata file {path}: {e}")
            raise StorageError("Video metadata is corrupt") from e

    def list(self) -> list[VideoRecord]:
        """Load every readable record, newest first.

        Files that cannot be read or parsed are logged and skipped.
        """
        if not self.metadata_dir.is_dir():
            return []

        records: list[VideoRecord] = []
        for entry in self.metadata_dir.glob("*.json"):
            if entry.name.startswith(".") or not entry.is_file():
                continue
            try:
                validate_path(entry, self.metadata_dir)
                records.append(VideoRecord.model_validate_json(entry.read_text(encoding="utf-8")))
            except (OSError, ValueError, SecurityError) as e:
                # ValueError covers invalid UTF-8 and schema errors
                logger.error(f"Skipping unreadable metadata file {entry}: {e}")

        records.sort(key=lambda r: (r.created_at.timestamp(), r.id), reverse=True)
        return records

    def delete(self, video_id: str) -> bool:
        """Remove the metadata file.

        Returns:
            True if a file was removed, False if none existed.

        Raises:
            OSError: If the file exists but cannot be removed.
        """
        path = self.path_for(video_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Deleted metadata file: {path}")
        return True
