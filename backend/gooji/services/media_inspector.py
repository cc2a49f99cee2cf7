"""Media inspection through the ffmpeg command-line tool.

The ingestion service depends on the ``MediaInspector`` interface only;
``FFmpegInspector`` is the implementation used in production. Tests supply
their own inspector.
"""

import logging
import os
import re
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

from gooji.config import Settings
from gooji.errors import InspectionError, ValidationError
from gooji.schemas.video import VideoInfo
from gooji.services.path_guard import check_token, is_within_any, resolve_executable

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"Duration:\s*(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)")
_RESOLUTION_RE = re.compile(r"\b(\d{2,5})x(\d{2,5})\b")


class MediaInspector(ABC):
    """Capability interface for probing videos and extracting thumbnails."""

    @abstractmethod
    def probe(self, video_path: str | os.PathLike) -> VideoInfo:
        """Return duration, resolution and codecs for a video file.

        Raises:
            InspectionError: If the tool fails or cannot be run.
        """
        ...

    @abstractmethod
    def thumbnail(
        self,
        video_path: str | os.PathLike,
        output_path: str | os.PathLike,
        timestamp_seconds: float,
    ) -> None:
        """Write one JPEG frame taken at ``timestamp_seconds`` to ``output_path``.

        Raises:
            ValidationError: If the timestamp is negative.
            InspectionError: If the tool fails or produces no image.
        """
        ...


def parse_probe_output(output: str) -> VideoInfo:
    """Parse ffmpeg's diagnostic output into a VideoInfo.

    Best-effort line scanning: the first ``Duration:``, ``Video:`` and
    ``Audio:`` occurrences are used and absent fields stay zero/empty.

    Example input lines::

        Duration: 00:01:02.50, start: 0.000000, bitrate: 1205 kb/s
        Stream #0:0(und): Video: h264 (High), yuv420p, 1280x720 [SAR 1:1 DAR 16:9], 30 fps
        Stream #0:1(und): Audio: aac (LC), 44100 Hz, stereo, fltp, 128 kb/s
    """
    info = VideoInfo()

    match = _DURATION_RE.search(output)
    if match:
        hours, minutes, seconds = match.groups()
        info.duration = int(hours) * 3600 + int(minutes) * 60 + float(seconds)

    video_line = _first_value(output, "Video:")
    if video_line:
        info.video_codec = video_line.split(",", 1)[0].strip()
        resolution = _RESOLUTION_RE.search(video_line)
        if resolution:
            info.width = int(resolution.group(1))
            info.height = int(resolution.group(2))

    audio_line = _first_value(output, "Audio:")
    if audio_line:
        info.audio_codec = audio_line.split(",", 1)[0].strip()

    return info


def _first_value(output: str, marker: str) -> str:
    """Return the text after ``marker`` on the first line that contains it."""
    for line in output.splitlines():
        if marker in line:
            return line.split(marker, 1)[1].strip()
    return ""


class FFmpegInspector(MediaInspector):
    """MediaInspector backed by the ffmpeg executable.

    Every file path handed to ffmpeg must resolve inside one of
    ``allowed_dirs``; every other non-flag argument is checked for
    traversal sequences and shell metacharacters.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        allowed_dirs: Iterable[str | os.PathLike] = (),
        thumbnail_quality: int = 2,
    ):
        """
        Args:
            ffmpeg_path: Absolute path or name on PATH.
            allowed_dirs: Directories that input and output files must live in.
            thumbnail_quality: ffmpeg ``-q:v`` value for JPEG output (2 = high).

        Raises:
            RuntimeError: If the executable is invalid or cannot be found.
        """
        self.ffmpeg_path = resolve_executable(ffmpeg_path)
        self.allowed_dirs = [Path(d) for d in allowed_dirs]
        self.thumbnail_quality = thumbnail_quality

    @classmethod
    def from_settings(cls, settings: Settings) -> "FFmpegInspector":
        storage = settings.storage
        return cls(
            ffmpeg_path=settings.ffmpeg.path,
            allowed_dirs=[storage.uploads, storage.thumbnails, storage.temp],
            thumbnail_quality=settings.ffmpeg.thumbnail_quality,
        )

    def probe(self, video_path: str | os.PathLike) -> VideoInfo:
        input_path = self._guard_path(video_path)
        output = self._run(["-hide_banner", "-i", input_path, "-f", "null", "-"])
        info = parse_probe_output(output)
        logger.debug(
            f"Probed {input_path}: {info.duration:.2f}s {info.width}x{info.height} "
            f"video={info.video_codec or '-'} audio={info.audio_codec or '-'}"
        )
        return info

    def thumbnail(
        self,
        video_path: str | os.PathLike,
        output_path: str | os.PathLike,
        timestamp_seconds: float,
    ) -> None:
        if timestamp_seconds < 0:
            raise ValidationError("Thumbnail timestamp must be non-negative")

        input_path = self._guard_path(video_path)
        target_path = self._guard_path(output_path)

        # A stale image would mask a run that wrote no frame
        try:
            Path(target_path).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove existing thumbnail {target_path}: {e}")
            raise InspectionError("Existing thumbnail could not be replaced") from e

        self._run([
            "-y",  # Overwrite output file
            "-i", input_path,
            "-ss", f"{timestamp_seconds:.2f}",
            "-vframes", "1",
            "-q:v", str(self.thumbnail_quality),
            target_path,
        ])

        # ffmpeg exits 0 without writing a frame when the seek is past the end
        if not Path(target_path).is_file():
            raise InspectionError("Thumbnail extraction produced no image")

    def _guard_path(self, path: str | os.PathLike) -> str:
        return str(is_within_any(path, self.allowed_dirs))

    def _run(self, args: list[str]) -> str:
        """Run ffmpeg with validated arguments and return its stderr text."""
        try:
            resolve_executable(self.ffmpeg_path)
        except RuntimeError as e:
            logger.error(f"ffmpeg unavailable: {e}")
            raise InspectionError("Media tool is unavailable") from e

        for arg in args:
            # Options and the "-" output sink
            if arg.startswith("-"):
                continue
            check_token(arg)

        try:
            result = subprocess.run(
                [self.ffmpeg_path, *args],
                capture_output=True,
                stdin=subprocess.DEVNULL,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else "No error output"
            logger.error(f"ffmpeg exited with {e.returncode}: {stderr[-2000:]}")
            raise InspectionError("Media tool failed to process the video") from e
        except OSError as e:
            logger.error(f"ffmpeg could not be executed: {e}")
            raise InspectionError("Media tool could not be executed") from e

        return result.stderr.decode("utf-8", errors="replace")
