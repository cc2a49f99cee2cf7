"""Shared fixtures: isolated storage, settings and a scripted media inspector."""

import os
from pathlib import Path

import pytest

from gooji.config import LoggingConfig, Settings, StorageConfig
from gooji.container import build_services
from gooji.errors import VideoError
from gooji.schemas.video import VideoInfo
from gooji.services.media_inspector import MediaInspector

# ISO base media header: box size, "ftyp", major brand
MP4_HEADER = b"\x00\x00\x00\x18ftypmp42"


def make_mp4_bytes(size: int = 256) -> bytes:
    """Bytes that pass the container signature check for .mp4 uploads."""
    return MP4_HEADER + b"\x00" * max(size - len(MP4_HEADER), 0)


def make_executable(path: Path) -> Path:
    """Create a no-op shell script usable as a stand-in tool path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n")
    os.chmod(path, 0o755)
    return path


class FakeInspector(MediaInspector):
    """MediaInspector returning canned results without running ffmpeg."""

    def __init__(
        self,
        info: VideoInfo | None = None,
        probe_error: VideoError | None = None,
        thumbnail_error: VideoError | None = None,
    ):
        self.info = info or VideoInfo(
            duration=12.5, width=1280, height=720, video_codec="h264", audio_codec="aac"
        )
        self.probe_error = probe_error
        self.thumbnail_error = thumbnail_error
        self.probed: list[Path] = []
        self.thumbnails: list[tuple[Path, Path, float]] = []

    def probe(self, video_path):
        self.probed.append(Path(video_path))
        if self.probe_error is not None:
            raise self.probe_error
        return self.info

    def thumbnail(self, video_path, output_path, timestamp_seconds):
        self.thumbnails.append((Path(video_path), Path(output_path), timestamp_seconds))
        if self.thumbnail_error is not None:
            raise self.thumbnail_error
        Path(output_path).write_bytes(b"\xff\xd8\xff\xe0fake-jpeg")


@pytest.fixture
def settings(tmp_path) -> Settings:
    settings = Settings(
        storage=StorageConfig(base_path=tmp_path / "storage"),
        logging=LoggingConfig(to_file=False),
    )
    settings.storage.ensure_directories()
    return settings


@pytest.fixture
def inspector() -> FakeInspector:
    return FakeInspector()


@pytest.fixture
def services(settings, inspector):
    services = build_services(settings, inspector=inspector)
    yield services
    services.thumbnail_queue.shutdown(wait=True)


def stored_files(directory: Path) -> list[str]:
    """Names of the visible files in a storage directory."""
    return sorted(p.name for p in Path(directory).iterdir() if not p.name.startswith("."))
