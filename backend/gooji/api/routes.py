"""API route handlers.

Blocking core operations run in worker threads via asyncio.to_thread so
concurrent requests do not stall the event loop.
"""

import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import FileResponse

from gooji import __version__
from gooji.container import Services
from gooji.errors import ValidationError
from gooji.schemas.video import UploadHeader, UploadMetadata, UploadResponse, VideoRecord
from gooji.services.path_guard import resolve_executable

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

VIDEO_MEDIA_TYPES = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".avi": "video/x-msvideo",
    ".mov": "video/quicktime",
}


def get_services(request: Request) -> Services:
    return request.app.state.services


def _split_tags(raw: str) -> list[str]:
    """Split a comma-separated form field into tags."""
    return [t for t in (part.strip() for part in raw.split(",")) if t]


def _require_id(video_id: str) -> str:
    if not video_id:
        raise ValidationError("Missing video ID")
    return video_id


@router.post("/videos", status_code=201, response_model=UploadResponse)
async def upload_video(
    video: Optional[UploadFile] = File(None),
    title: str = Form(""),
    description: str = Form(""),
    tags: str = Form(""),
    services: Services = Depends(get_services),
):
    """Upload a video with its title, description and optional tags."""
    if video is None or not video.filename:
        raise ValidationError("Video file is required")

    header = UploadHeader(
        filename=video.filename,
        content_type=video.content_type or "",
        size=video.size,
    )
    metadata = UploadMetadata(title=title, description=description, tags=_split_tags(tags))

    try:
        record = await asyncio.to_thread(
            services.ingestion.process_upload, video.file, header, metadata
        )
    finally:
        await video.close()

    return UploadResponse(id=record.id, filename=record.filename)


@router.get("/videos", response_model=list[VideoRecord])
async def list_videos(services: Services = Depends(get_services)):
    """List metadata for every stored video, newest first."""
    return await asyncio.to_thread(services.catalog.list_videos)


@router.get("/videos/metadata", response_model=VideoRecord)
async def get_video_metadata(
    video_id: str = Query("", alias="id"),
    services: Services = Depends(get_services),
):
    """Metadata for one video."""
    return await asyncio.to_thread(services.catalog.get_video, _require_id(video_id))


@router.get("/videos/stream")
async def stream_video(
    video_id: str = Query("", alias="id"),
    services: Services = Depends(get_services),
):
    """Serve the raw video bytes."""
    path = await asyncio.to_thread(services.catalog.video_file, _require_id(video_id))
    media_type = VIDEO_MEDIA_TYPES.get(path.suffix.lower(), "application/octet-stream")
    return FileResponse(path=str(path), media_type=media_type, filename=path.name)


@router.get("/videos/thumbnail")
async def get_thumbnail(
    video_id: str = Query("", alias="id"),
    services: Services = Depends(get_services),
):
    """Serve the JPEG thumbnail; 404 until it has been generated."""
    path = await asyncio.to_thread(services.catalog.thumbnail_file, _require_id(video_id))
    return FileResponse(path=str(path), media_type="image/jpeg")


@router.delete("/videos")
async def delete_video(
    video_id: str = Query("", alias="id"),
    services: Services = Depends(get_services),
):
    """Delete a video's file, metadata and thumbnail."""
    await asyncio.to_thread(services.catalog.delete_video, _require_id(video_id))
    return {"status": "deleted", "id": video_id}


@router.get("/health")
async def health_check(services: Services = Depends(get_services)):
    """Health check endpoint."""
    settings = services.settings
    try:
        resolve_executable(settings.ffmpeg.path)
        ffmpeg_available = True
    except RuntimeError:
        ffmpeg_available = False
    uploads_accessible = os.access(settings.storage.uploads, os.W_OK)

    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "ffmpeg": ffmpeg_available,
            "video_dir": uploads_accessible,
        },
        "thumbnails": services.thumbnail_queue.stats(),
    }
