"""Image repository mapping uploaded images onto a blob store."""

import logging
import posixpath
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from image_uploads.schemas.image import ImageMetadata
from image_uploads.storage.base import BlobStore

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jpg"
_SAFE_EXTENSION = re.compile(r"\.[A-Za-z0-9]{1,16}")


def generate_file_id() -> str:
    """Generate a random 128-bit identifier as 32 hex characters."""
    return secrets.token_hex(16)


def derive_storage_key(file_id: str, original_name: str) -> str:
    """Build the storage key from a file ID and the original file's extension.

    Args:
        file_id: Random identifier of the upload.
        original_name: Client-side file name; only its extension is used.

    Returns:
        str: ``<file_id><ext>``, with ``.jpg`` when the name has no short
        alphanumeric extension.
    """
    extension = posixpath.splitext(original_name)[1]
    if not _SAFE_EXTENSION.fullmatch(extension):
        extension = DEFAULT_EXTENSION
    return f"{file_id}{extension}"


@dataclass
class StoredImage:
    """An image as held by the blob store."""
    key: str
    metadata: ImageMetadata
    content: Optional[bytes] = None


class ImageRepository:
    """Repository for uploaded images.

    Images are create-and-read only. Keys are derived from a fresh random
    identifier on every upload, so concurrent uploads of the same bytes
    never share a key. Metadata is kept as a structured ``ImageMetadata``
    and serialized to strings only when it crosses the store boundary.
    """

    def __init__(self, store: BlobStore):
        """Initialize the repository.

        Args:
            store: Blob store holding image payloads and metadata.
        """
        self.store = store

    def add_image(self, content: bytes, original_name: str, mime_type: str) -> StoredImage:
        """Store a new image under a freshly generated key.

        Args:
            content: Decoded image bytes.
            original_name: Client-side file name.
            mime_type: MIME type of the image.

        Returns:
            StoredImage: The key and metadata written to the store.

        Raises:
            ValueError: If the content is empty.
            StorageError: If the store write fails.
        """
        if not content:
            raise ValueError("Image content cannot be empty")

        file_id = generate_file_id()
        key = derive_storage_key(file_id, original_name)
        metadata = ImageMetadata(
            original_name=original_name,
            mime_type=mime_type,
            uploaded_at=datetime.now(timezone.utc),
            file_id=file_id,
            size=len(content),
        )

        self.store.put(key, content, metadata.to_store())
        logger.info(f"Stored image {key} ({metadata.size} bytes, {mime_type})")

        return StoredImage(key=key, metadata=metadata)

    def get_image(self, key: str) -> Optional[StoredImage]:
        """Read an image and its metadata.

        Returns:
            Optional[StoredImage]: The image, or None if the key is absent.
        """
        content = self.store.get(key)
        if content is None:
            return None

        metadata = ImageMetadata.from_store(self.store.get_metadata(key))
        logger.debug(f"Retrieved image {key} ({len(content)} bytes)")
        return StoredImage(key=key, metadata=metadata, content=content)

    def get_metadata(self, key: str) -> ImageMetadata:
        """Read the metadata of one image.

        A key without metadata yields an empty record rather than an error.
        """
        return ImageMetadata.from_store(self.store.get_metadata(key))

    def list_keys(self) -> list[str]:
        """List the storage keys of every image, in store order."""
        return self.store.list_keys()
