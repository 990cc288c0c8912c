"""In-memory implementation of BlobStore."""
import logging
import threading
from typing import Mapping, Optional

from .base import BlobStore

logger = logging.getLogger(__name__)


class InMemoryBlobStore(BlobStore):
    """Dict-based blob store for development and testing.

    Data is not persisted and will be lost when the application restarts.
    Keys are listed in insertion order.
    """

    def __init__(self, name: str = "image-uploads"):
        self.name = name
        self._blobs: dict[str, bytes] = {}
        self._metadata: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()
        logger.info(f"Initialized InMemoryBlobStore: {self.name}")

    def put(self, key: str, content: bytes, metadata: Mapping[str, str]) -> None:
        if not key:
            raise ValueError("Storage key cannot be empty")

        with self._lock:
            self._blobs[key] = bytes(content)
            self._metadata[key] = {str(k): str(v) for k, v in metadata.items()}
        logger.debug(f"Stored blob {key} ({len(content)} bytes)")

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._blobs.get(key)

    def get_metadata(self, key: str) -> Optional[dict[str, str]]:
        with self._lock:
            metadata = self._metadata.get(key)
            return dict(metadata) if metadata is not None else None

    def list_keys(self) -> list[str]:
        with self._lock:
            return list(self._blobs)

    def count(self) -> int:
        """Get the number of stored blobs."""
        with self._lock:
            return len(self._blobs)

    def clear(self) -> None:
        """Remove every blob.

        This is mainly useful for testing purposes.
        """
        with self._lock:
            self._blobs.clear()
            self._metadata.clear()
        logger.debug(f"Cleared blob store: {self.name}")
