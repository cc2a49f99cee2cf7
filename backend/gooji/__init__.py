"""Gooji - record, upload and browse short videos.

This module provides startup validation functions to ensure required
dependencies are available before the server accepts uploads.
Call validate_dependencies() during application startup.
"""

import logging
import subprocess

from gooji.services.path_guard import resolve_executable

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def validate_dependencies(ffmpeg_path: str = "ffmpeg") -> str:
    """Validate required system dependencies are available.

    This function should be called during application startup to fail fast
    with clear installation instructions if required dependencies are missing.

    Args:
        ffmpeg_path: Configured ffmpeg executable (absolute path or name on PATH).

    Returns:
        The first line of ``ffmpeg -version`` output.

    Raises:
        RuntimeError: If ffmpeg is not found or not functional.
    """
    try:
        executable = resolve_executable(ffmpeg_path)
        result = subprocess.run(
            [executable, "-version"],
            capture_output=True,
            check=True,
            text=True
        )
    except (RuntimeError, subprocess.CalledProcessError, FileNotFoundError) as e:
        raise RuntimeError(
            f"ffmpeg not usable at '{ffmpeg_path}'. Install ffmpeg or set GOOJI_FFMPEG__PATH.\n"
            "Ubuntu/Debian: sudo apt-get install ffmpeg\n"
            "macOS: brew install ffmpeg\n"
            "Windows: https://ffmpeg.org/download.html"
        ) from e

    version_line = result.stdout.split('\n')[0]
    logger.info(f"ffmpeg validated: {version_line}")
    return version_line
