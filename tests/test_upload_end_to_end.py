"""End-to-end tests for upload, fetch and list against every blob store backend."""

import base64
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image as PILImage
from sqlalchemy.orm import sessionmaker

from image_uploads import dependencies
from image_uploads.db import create_db_engine, init_db
from image_uploads.dependencies import get_blob_store
from image_uploads.main import app
from image_uploads.storage import DatabaseBlobStore, InMemoryBlobStore, LocalBlobStore
from config import get_settings


@pytest.fixture(params=["memory", "local", "database"])
def store(request, tmp_path):
    """Create each blob store backend in turn."""
    if request.param == "memory":
        yield InMemoryBlobStore()
    elif request.param == "local":
        yield LocalBlobStore(storage_root=tmp_path / "blobs", name="image-uploads")
    else:
        # File-backed so concurrent metadata reads use separate connections
        engine = create_db_engine(f"sqlite:///{tmp_path / 'blobs.sqlite3'}")
        init_db(engine)
        yield DatabaseBlobStore(sessionmaker(bind=engine), name="image-uploads")
        engine.dispose()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_blob_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_image_data_uri(image_format: str, mime_type: str, seed: int = 0) -> tuple[str, bytes]:
    """Create a real image and return its data URI and raw bytes."""
    img = PILImage.new("RGB", (16, 16), color=(seed % 256, 80, 160))
    img_bytes = io.BytesIO()
    img.save(img_bytes, format=image_format)
    content = img_bytes.getvalue()
    return f"data:{mime_type};base64,{base64.b64encode(content).decode()}", content


@pytest.mark.parametrize("image_format,mime_type,filename", [
    ("PNG", "image/png", "photo.png"),
    ("JPEG", "image/jpeg", "photo.jpeg"),
    ("GIF", "image/gif", "anim.gif"),
])
def test_upload_then_fetch_returns_identical_bytes(client, image_format, mime_type, filename):
    data_uri, content = create_image_data_uri(image_format, mime_type)

    upload = client.post("/api/upload-image", json={"image": data_uri, "filename": filename})
    assert upload.status_code == 200
    uploaded = upload.json()

    fetched = client.get(uploaded["url"])
    assert fetched.status_code == 200
    assert fetched.content == content
    assert fetched.headers["content-type"] == mime_type == uploaded["mimeType"]

    # The fetched bytes decode back to the same image
    assert PILImage.open(io.BytesIO(fetched.content)).size == (16, 16)


def test_gallery_roundtrip(client):
    uploaded = []
    for seed in range(3):
        data_uri, _ = create_image_data_uri("PNG", "image/png", seed=seed)
        response = client.post("/api/upload-image", json={"image": data_uri, "filename": f"{seed}.png"})
        uploaded.append(response.json())

    listing = client.get("/api/list-images").json()

    assert listing["count"] == len(listing["images"]) == 3
    assert {image["filename"] for image in listing["images"]} == {u["filename"] for u in uploaded}
    for image in listing["images"]:
        assert client.get(image["url"]).status_code == 200


def test_rejected_upload_leaves_store_empty(client, store):
    response = client.post(
        "/api/upload-image",
        json={"image": "data:image/png;base64," + base64.b64encode(b"\x00" * (5 * 1024 * 1024 + 1)).decode()},
    )

    assert response.status_code == 400
    assert store.list_keys() == []
    assert client.get("/api/list-images").json() == {"success": True, "images": [], "count": 0}


def test_unknown_key_is_not_found(client):
    response = client.get("/api/get-image", params={"filename": "ffffffffffffffffffffffffffffffff.png"})

    assert response.status_code == 404


class TestConfiguredStore:
    """Test that get_blob_store builds the backend selected by settings."""

    @pytest.fixture(autouse=True)
    def reset_store(self, monkeypatch, tmp_path):
        monkeypatch.setattr(dependencies, "_blob_store", None)
        monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "blobs"))
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_memory_store(self, monkeypatch):
        monkeypatch.setenv("STORAGE_TYPE", "memory")

        store = get_blob_store()

        assert isinstance(store, InMemoryBlobStore)
        assert get_blob_store() is store

    def test_local_store(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORAGE_TYPE", "local")
        monkeypatch.setenv("STORE_NAME", "configured-uploads")

        store = get_blob_store()

        assert isinstance(store, LocalBlobStore)
        assert store.blob_dir == tmp_path / "blobs" / "configured-uploads" / "blobs"
