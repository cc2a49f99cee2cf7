"""Wiring of services from settings.

The API and the CLI both build their components here, passing settings
and collaborators through constructors.
"""

from dataclasses import dataclass
from typing import Optional

from gooji.config import Settings
from gooji.services.catalog import VideoCatalog
from gooji.services.ingestion import IngestionService
from gooji.services.media_inspector import FFmpegInspector, MediaInspector
from gooji.services.metadata_store import MetadataStore
from gooji.services.video_store import VideoStore
from gooji.workers.thumbnail_tasks import ThumbnailQueue


@dataclass
class Services:
    settings: Settings
    inspector: MediaInspector
    metadata_store: MetadataStore
    video_store: VideoStore
    thumbnail_queue: ThumbnailQueue
    ingestion: IngestionService
    catalog: VideoCatalog

    def close(self) -> int:
        """Shut down the thumbnail queue according to the configured policy."""
        return self.thumbnail_queue.shutdown(wait=self.settings.thumbnails.drain_on_shutdown)


def build_services(settings: Settings, inspector: Optional[MediaInspector] = None) -> Services:
    """Create every core component.

    Args:
        settings: Application settings.
        inspector: Media inspector to use; defaults to ffmpeg, which raises
            RuntimeError here if the executable cannot be resolved.
    """
    if inspector is None:
        inspector = FFmpegInspector.from_settings(settings)

    metadata_store = MetadataStore(settings.storage.metadata)
    video_store = VideoStore(
        settings.storage, metadata_store, extensions=settings.upload.allowed_extensions
    )
    thumbnail_queue = ThumbnailQueue(
        workers=settings.thumbnails.workers,
        max_pending=settings.thumbnails.max_pending,
        max_status=settings.thumbnails.max_status,
    )
    ingestion = IngestionService(
        video_store,
        metadata_store,
        inspector,
        thumbnail_queue,
        config=settings.upload,
    )
    catalog = VideoCatalog(metadata_store, video_store, thumbnail_queue=thumbnail_queue)

    return Services(
        settings=settings,
        inspector=inspector,
        metadata_store=metadata_store,
        video_store=video_store,
        thumbnail_queue=thumbnail_queue,
        ingestion=ingestion,
        catalog=catalog,
    )
