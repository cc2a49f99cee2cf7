"""Tests for the JSON metadata sidecar store."""

from datetime import datetime, timedelta, timezone

import pytest

from gooji.errors import NotFoundError, SecurityError, StorageError, ValidationError
from gooji.schemas.video import VideoRecord
from gooji.services.metadata_store import MetadataStore


@pytest.fixture
def store(tmp_path):
    return MetadataStore(tmp_path / "metadata")


def _record(video_id: str, minutes_ago: int = 0, **fields) -> VideoRecord:
    created = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago)
    return VideoRecord(id=video_id, filename=f"{video_id}.mp4", created_at=created, **fields)


def test_save_and_get(store):
    record = _record("abc", title="Boozhoo", tags=["ojibwe"], duration=3.5)
    path = store.save(record)

    assert path.name == "abc.json"
    loaded = store.get("abc")
    assert loaded == record


def test_save_replaces_existing(store):
    store.save(_record("abc", title="first"))
    store.save(_record("abc", title="second"))
    assert store.get("abc").title == "second"
    assert [p.name for p in store.metadata_dir.iterdir()] == ["abc.json"]


def test_save_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "metadata"
    blocker.write_text("not a directory")
    store = MetadataStore(blocker)

    with pytest.raises(StorageError):
        store.save(_record("abc"))


def test_get_missing(store):
    with pytest.raises(NotFoundError):
        store.get("missing")


def test_get_corrupt_file(store):
    store.metadata_dir.mkdir(parents=True)
    (store.metadata_dir / "bad.json").write_text("{not json")
    with pytest.raises(StorageError):
        store.get("bad")


def test_invalid_ids(store):
    with pytest.raises(ValidationError):
        store.get("")
    with pytest.raises(SecurityError):
        store.get("../etc/passwd")


def test_list_empty_when_directory_missing(store):
    assert store.list() == []


def test_list_skips_corrupt_files(store):
    store.save(_record("one", minutes_ago=5))
    store.save(_record("two", minutes_ago=1))
    (store.metadata_dir / "broken.json").write_text("{not json")
    (store.metadata_dir / "notes.txt").write_text("ignored")

    records = store.list()
    assert [r.id for r in records] == ["two", "one"]


def test_list_newest_first(store):
    store.save(_record("old", minutes_ago=60))
    store.save(_record("new", minutes_ago=0))
    store.save(_record("mid", minutes_ago=30))

    assert [r.id for r in store.list()] == ["new", "mid", "old"]


def test_delete_is_idempotent(store):
    store.save(_record("abc"))
    assert store.delete("abc") is True
    assert store.delete("abc") is False
    with pytest.raises(NotFoundError):
        store.get("abc")
