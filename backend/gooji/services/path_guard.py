"""Path validation for every filesystem and subprocess path.

Video identifiers and upload filenames are attacker-controlled, so any path
built from them is checked here before it is opened, removed, or handed to
ffmpeg.
"""

import os
import shutil
from pathlib import Path

from gooji.errors import SecurityError

# Shell and glob metacharacters never allowed in a path or tool argument
BLOCKED_CHARACTERS = ("|", "&", ";", "`", "$", "(", ")", "{", "}", "[", "]", "*", "?", "\\")


def check_token(token: str) -> None:
    """Reject empty values, traversal sequences and shell metacharacters.

    Raises:
        SecurityError: If the token is unsafe.
    """
    if not token:
        raise SecurityError("Path cannot be empty")

    if ".." in token:
        raise SecurityError("Path traversal not allowed")

    for char in BLOCKED_CHARACTERS:
        if char in token:
            raise SecurityError(f"Character '{char}' not allowed in path")


def validate_path(path: str | os.PathLike, allowed_base_dir: str | os.PathLike) -> Path:
    """Validate that ``path`` is safe and stays within ``allowed_base_dir``.

    Both paths are resolved to canonical absolute form (relative paths
    against the working directory) and compared component-wise, so
    ``/data/uploads2`` is not accepted for a base of ``/data/uploads``.

    Args:
        path: Candidate file path.
        allowed_base_dir: Directory the path must stay inside.

    Returns:
        The resolved absolute path.

    Raises:
        SecurityError: If the path is empty, contains a blocked sequence, or
            resolves outside the base directory.
    """
    raw = os.fspath(path)
    check_token(raw)

    resolved = Path(raw).resolve()
    base = Path(allowed_base_dir).resolve()

    # Path traversal protection
    if not resolved.is_relative_to(base):
        raise SecurityError("Path is outside the allowed directory")

    return resolved


def is_within_any(path: str | os.PathLike, allowed_dirs) -> Path:
    """Validate ``path`` against the first of ``allowed_dirs`` that contains it.

    Raises:
        SecurityError: If no allowed directory contains the path.
    """
    last_error = SecurityError("No allowed directories configured")
    for base in allowed_dirs:
        try:
            return validate_path(path, base)
        except SecurityError as e:
            last_error = e
    raise last_error


def resolve_executable(executable: str) -> str:
    """Resolve an external tool to an absolute, existing executable.

    Args:
        executable: Absolute path, or a bare name looked up on PATH.

    Returns:
        Absolute path of the executable.

    Raises:
        RuntimeError: If the path is unsafe or cannot be found. This is a
            configuration error and is fatal at startup.
    """
    try:
        check_token(executable)
    except SecurityError as e:
        raise RuntimeError(f"Invalid executable path '{executable}': {e.message}") from e

    if os.path.isabs(executable):
        if not os.path.isfile(executable):
            raise RuntimeError(f"Executable not found: {executable}")
        if not os.access(executable, os.X_OK):
            raise RuntimeError(f"Executable is not runnable: {executable}")
        return executable

    found = shutil.which(executable)
    if found is None:
        raise RuntimeError(f"Executable not found in PATH: {executable}")
    return found
