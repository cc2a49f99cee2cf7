"""Read and delete operations over stored videos."""

import logging
from pathlib import Path
from typing import Optional

from gooji.errors import NotFoundError, ValidationError
from gooji.schemas.video import DeleteResult, VideoRecord
from gooji.services.metadata_store import MetadataStore
from gooji.services.video_store import VideoStore
from gooji.workers.thumbnail_tasks import ThumbnailQueue

logger = logging.getLogger(__name__)


class VideoCatalog:
    """Query/delete facade used by the HTTP layer and the CLI."""

    def __init__(
        self,
        metadata_store: MetadataStore,
        video_store: VideoStore,
        thumbnail_queue: Optional[ThumbnailQueue] = None,
    ):
        self.metadata_store = metadata_store
        self.video_store = video_store
        self.thumbnail_queue = thumbnail_queue

    def list_videos(self) -> list[VideoRecord]:
        """All readable records, newest first; empty when there are none."""
        return self.metadata_store.list()

    def get_video(self, video_id: str) -> VideoRecord:
        """Raises NotFoundError if the id has no metadata."""
        if not video_id:
            raise ValidationError("Video ID is required")
        return self.metadata_store.get(self.video_store.stem(video_id))

    def delete_video(self, video_id: str) -> DeleteResult:
        """Remove video, metadata and thumbnail.

        Always succeeds for a non-empty id; partial failures are logged and
        reported in the returned DeleteResult only.
        """
        if not video_id:
            raise ValidationError("Video ID is required")

        result = self.video_store.delete(video_id)
        if self.thumbnail_queue is not None:
            self.thumbnail_queue.forget(self.video_store.stem(video_id))
        if result.complete:
            logger.info(f"Successfully deleted video: {video_id}")
        else:
            logger.warning(
                f"Deleted video {video_id} with failures: {', '.join(result.failures)}"
            )
        return result

    def video_file(self, video_id: str) -> Path:
        if not video_id:
            raise ValidationError("Video ID is required")
        return self.video_store.video_path(video_id)

    def thumbnail_file(self, video_id: str) -> Path:
        if not video_id:
            raise ValidationError("Video ID is required")
        path = self.video_store.thumbnail_path(video_id)
        if not path.is_file():
            raise NotFoundError(f"Thumbnail not found: {video_id}")
        return path
