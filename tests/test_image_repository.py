"""Tests for the image repository."""

import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from image_uploads.repositories import ImageRepository, derive_storage_key, generate_file_id
from image_uploads.storage import InMemoryBlobStore
from image_uploads.storage.base import BlobStore, StorageError


@pytest.fixture
def store():
    return InMemoryBlobStore()


@pytest.fixture
def repository(store):
    return ImageRepository(store)


class TestKeyDerivation:
    """Test identifier and storage key helpers."""

    def test_generate_file_id_format(self):
        assert re.fullmatch(r"[a-f0-9]{32}", generate_file_id())

    def test_generate_file_id_unique(self):
        assert len({generate_file_id() for _ in range(1000)}) == 1000

    @pytest.mark.parametrize("original_name,expected", [
        ("photo.png", "abc.png"),
        ("archive.tar.gz", "abc.gz"),
        ("upload.jpg", "abc.jpg"),
        ("no_extension", "abc.jpg"),
        (".hidden", "abc.jpg"),
        ("dir/sub/picture.webp", "abc.webp"),
        ("", "abc.jpg"),
        ("a." + "x" * 300, "abc.jpg"),
        ("a.p\x00ng", "abc.jpg"),
        ("photo.pn g", "abc.jpg"),
        ("photo.png\n", "abc.jpg"),
    ])
    def test_derive_storage_key(self, original_name, expected):
        assert derive_storage_key("abc", original_name) == expected


class TestImageRepository:
    """Test ImageRepository against an in-memory store."""

    def test_add_image(self, repository, store):
        before = datetime.now(timezone.utc)

        stored = repository.add_image(b"\x89PNG\r\n\x1a\n", "cat.png", "image/png")

        assert stored.key == f"{stored.metadata.file_id}.png"
        assert stored.metadata.original_name == "cat.png"
        assert stored.metadata.mime_type == "image/png"
        assert stored.metadata.size == 8
        assert stored.metadata.uploaded_at >= before

        assert store.get(stored.key) == b"\x89PNG\r\n\x1a\n"
        assert store.get_metadata(stored.key)["size"] == "8"
        assert store.get_metadata(stored.key)["fileId"] == stored.metadata.file_id

    def test_add_image_single_write(self):
        store = Mock(spec=BlobStore)
        repository = ImageRepository(store)

        stored = repository.add_image(b"bytes", "a.jpg", "image/jpeg")

        store.put.assert_called_once()
        key, content, metadata = store.put.call_args.args
        assert key == stored.key
        assert content == b"bytes"
        assert metadata["size"] == "5"

    def test_add_image_empty_content(self, repository, store):
        with pytest.raises(ValueError, match="Image content cannot be empty"):
            repository.add_image(b"", "a.jpg", "image/jpeg")

        assert store.count() == 0

    def test_add_image_propagates_storage_error(self):
        store = Mock(spec=BlobStore)
        store.put.side_effect = StorageError("disk full")

        with pytest.raises(StorageError):
            ImageRepository(store).add_image(b"bytes", "a.jpg", "image/jpeg")

    def test_same_bytes_get_distinct_keys(self, repository):
        first = repository.add_image(b"same", "a.jpg", "image/jpeg")
        second = repository.add_image(b"same", "a.jpg", "image/jpeg")

        assert first.key != second.key
        assert first.metadata.file_id != second.metadata.file_id

    def test_concurrent_uploads_never_collide(self, repository, store):
        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(
                lambda _: repository.add_image(b"same bytes", "a.png", "image/png"),
                range(50),
            ))

        assert len({stored.key for stored in results}) == 50
        assert len({stored.metadata.file_id for stored in results}) == 50
        assert store.count() == 50

    def test_get_image(self, repository):
        stored = repository.add_image(b"bytes", "a.gif", "image/gif")

        fetched = repository.get_image(stored.key)

        assert fetched.key == stored.key
        assert fetched.content == b"bytes"
        assert fetched.metadata.original_name == "a.gif"
        assert fetched.metadata.mime_type == "image/gif"
        assert fetched.metadata.file_id == stored.metadata.file_id
        assert fetched.metadata.size == 5
        # Timestamps are stored with millisecond precision
        assert abs((fetched.metadata.uploaded_at - stored.metadata.uploaded_at).total_seconds()) < 0.001

    def test_get_image_missing(self, repository):
        assert repository.get_image("missing.jpg") is None

    def test_get_image_without_metadata(self, repository, store):
        store.put("raw.jpg", b"raw", {})

        fetched = repository.get_image("raw.jpg")

        assert fetched.content == b"raw"
        assert fetched.metadata.mime_type is None
        assert fetched.metadata.size == 0

    def test_get_metadata(self, repository):
        stored = repository.add_image(b"bytes", "a.jpg", "image/jpeg")

        metadata = repository.get_metadata(stored.key)

        assert metadata.file_id == stored.metadata.file_id
        assert metadata.size == 5

    def test_get_metadata_missing_key(self, repository):
        metadata = repository.get_metadata("missing.jpg")

        assert metadata.size == 0
        assert metadata.file_id is None

    def test_list_keys(self, repository):
        keys = [repository.add_image(b"x", f"{i}.jpg", "image/jpeg").key for i in range(3)]

        assert repository.list_keys() == keys
