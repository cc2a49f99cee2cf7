"""HTTP boundary tests using FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeInspector, make_mp4_bytes, stored_files
from gooji.api.app import create_app
from gooji.errors import InspectionError


@pytest.fixture
def client(settings, inspector):
    app = create_app(settings, inspector=inspector)
    with TestClient(app) as client:
        yield client


def _post_video(client, data=None, filename="clip.mp4", content_type="video/mp4", **form):
    data = make_mp4_bytes(2048) if data is None else data
    return client.post(
        "/api/videos",
        files={"video": (filename, data, content_type)},
        data=form,
    )


def _drain_thumbnails(client):
    client.app.state.services.thumbnail_queue.shutdown(wait=True)


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

def test_upload_returns_id_and_filename(client, settings):
    response = _post_video(client, title="Hello", description="desc", tags="dance, song ,")

    assert response.status_code == 201
    body = response.json()
    assert set(body) == {"id", "filename"}
    assert body["filename"] == f"{body['id']}.mp4"
    assert stored_files(settings.storage.uploads) == [body["filename"]]

    meta = client.get("/api/videos/metadata", params={"id": body["id"]}).json()
    assert meta["title"] == "Hello"
    assert meta["tags"] == ["dance", "song"]
    assert meta["duration"] == pytest.approx(12.5)


def test_upload_without_tags_gets_defaults(client):
    body = _post_video(client, title="Hello").json()
    meta = client.get("/api/videos/metadata", params={"id": body["id"]}).json()
    assert meta["tags"] == ["ojibwe", "language", "culture"]


def test_upload_rejects_non_video(client, settings):
    response = _post_video(client, data=b"just some text here", title="x")

    assert response.status_code == 400
    assert response.json()["error"] == "validation"
    assert stored_files(settings.storage.uploads) == []


def test_upload_rejects_wrong_content_type(client):
    response = _post_video(client, content_type="text/plain")
    assert response.status_code == 400


def test_upload_missing_file(client):
    response = client.post("/api/videos", data={"title": "no file"})
    assert response.status_code == 400
    assert response.json()["error"] == "validation"


def test_upload_probe_failure_is_500(settings):
    inspector = FakeInspector(probe_error=InspectionError("Media tool failed to process the video"))
    with TestClient(create_app(settings, inspector=inspector)) as client:
        response = _post_video(client)

    assert response.status_code == 500
    assert response.json() == {
        "error": "inspection",
        "message": "Media tool failed to process the video",
    }
    assert stored_files(settings.storage.uploads) == []
    assert stored_files(settings.storage.metadata) == []


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------

def test_list_empty(client):
    response = client.get("/api/videos")
    assert response.status_code == 200
    assert response.json() == []


def test_list_returns_records(client):
    ids = {_post_video(client, title=f"v{i}").json()["id"] for i in range(3)}

    records = client.get("/api/videos").json()
    assert {r["id"] for r in records} == ids
    assert all("created_at" in r for r in records)


def test_metadata_errors(client):
    assert client.get("/api/videos/metadata").status_code == 400
    assert client.get("/api/videos/metadata", params={"id": "nope"}).status_code == 404

    response = client.get("/api/videos/metadata", params={"id": "../../etc/passwd"})
    assert response.status_code == 403
    assert response.json()["error"] == "security"


def test_stream(client):
    data = make_mp4_bytes(4096)
    body = _post_video(client, data=data).json()

    response = client.get("/api/videos/stream", params={"id": body["id"]})
    assert response.status_code == 200
    assert response.content == data
    assert response.headers["content-type"] == "video/mp4"

    assert client.get("/api/videos/stream", params={"id": "ghost"}).status_code == 404
    assert client.get("/api/videos/stream").status_code == 400


def test_thumbnail(client):
    body = _post_video(client).json()
    _drain_thumbnails(client)

    response = client.get("/api/videos/thumbnail", params={"id": body["id"]})
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert response.content.startswith(b"\xff\xd8")

    assert client.get("/api/videos/thumbnail", params={"id": "ghost"}).status_code == 404


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

def test_delete(client, settings):
    body = _post_video(client).json()
    _drain_thumbnails(client)

    response = client.delete("/api/videos", params={"id": body["id"]})
    assert response.status_code == 200
    assert response.json() == {"status": "deleted", "id": body["id"]}

    assert client.get("/api/videos").json() == []
    assert client.get("/api/videos/metadata", params={"id": body["id"]}).status_code == 404
    assert stored_files(settings.storage.uploads) == []
    assert stored_files(settings.storage.thumbnails) == []


def test_delete_unknown_id_still_succeeds(client):
    response = client.delete("/api/videos", params={"id": "ghost"})
    assert response.status_code == 200


def test_delete_requires_id(client):
    assert client.delete("/api/videos").status_code == 400


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

def test_health(client):
    body = client.get("/api/health").json()
    assert body["status"] == "healthy"
    assert body["checks"]["video_dir"] is True
    assert "in_flight" in body["thumbnails"]
