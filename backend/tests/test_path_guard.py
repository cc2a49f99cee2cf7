"""Tests for path validation and executable resolution."""

import os

import pytest

from conftest import make_executable
from gooji.errors import SecurityError
from gooji.services.path_guard import (
    BLOCKED_CHARACTERS,
    check_token,
    is_within_any,
    resolve_executable,
    validate_path,
)


# ---------------------------------------------------------------------------
# validate_path
# ---------------------------------------------------------------------------

def test_path_inside_base_is_returned_resolved(tmp_path):
    result = validate_path(tmp_path / "uploads" / "a.mp4", tmp_path / "uploads")
    assert result == (tmp_path / "uploads" / "a.mp4").resolve()
    assert result.is_absolute()


def test_traversal_sequence_rejected(tmp_path):
    with pytest.raises(SecurityError):
        validate_path(f"{tmp_path}/uploads/../secret.txt", tmp_path / "uploads")


def test_empty_path_rejected(tmp_path):
    with pytest.raises(SecurityError):
        validate_path("", tmp_path)


@pytest.mark.parametrize("char", BLOCKED_CHARACTERS)
def test_shell_metacharacters_rejected(tmp_path, char):
    with pytest.raises(SecurityError):
        validate_path(tmp_path / f"a{char}b.mp4", tmp_path)
    with pytest.raises(SecurityError):
        check_token(f"a{char}b")


def test_sibling_directory_with_common_prefix_rejected(tmp_path):
    (tmp_path / "uploads").mkdir()
    (tmp_path / "uploads2").mkdir()
    with pytest.raises(SecurityError):
        validate_path(tmp_path / "uploads2" / "a.mp4", tmp_path / "uploads")


def test_symlink_escaping_base_rejected(tmp_path):
    base = tmp_path / "uploads"
    outside = tmp_path / "outside"
    base.mkdir()
    outside.mkdir()
    os.symlink(outside, base / "link")

    with pytest.raises(SecurityError):
        validate_path(base / "link" / "a.mp4", base)


def test_is_within_any_uses_first_matching_dir(tmp_path):
    uploads = tmp_path / "uploads"
    thumbs = tmp_path / "thumbnails"
    assert is_within_any(thumbs / "x.jpg", [uploads, thumbs]) == (thumbs / "x.jpg").resolve()

    with pytest.raises(SecurityError):
        is_within_any(tmp_path / "other" / "x.jpg", [uploads, thumbs])

    with pytest.raises(SecurityError):
        is_within_any(uploads / "x.mp4", [])


def test_check_token_accepts_plain_names():
    check_token("abc123.mp4")
    check_token("1.00")


# ---------------------------------------------------------------------------
# resolve_executable
# ---------------------------------------------------------------------------

def test_absolute_executable_resolved(tmp_path):
    tool = make_executable(tmp_path / "bin" / "ffmpeg")
    assert resolve_executable(str(tool)) == str(tool)


def test_missing_absolute_executable_is_fatal(tmp_path):
    with pytest.raises(RuntimeError, match="not found"):
        resolve_executable(str(tmp_path / "nope"))


def test_non_executable_file_is_fatal(tmp_path):
    tool = tmp_path / "ffmpeg"
    tool.write_text("")
    os.chmod(tool, 0o644)
    with pytest.raises(RuntimeError):
        resolve_executable(str(tool))


def test_unsafe_executable_name_is_fatal():
    with pytest.raises(RuntimeError, match="Invalid executable"):
        resolve_executable("ffmpeg; rm -rf /")


def test_executable_looked_up_on_path(tmp_path, monkeypatch):
    tool = make_executable(tmp_path / "bin" / "ffmpeg")
    monkeypatch.setenv("PATH", str(tool.parent))
    assert resolve_executable("ffmpeg") == str(tool)
