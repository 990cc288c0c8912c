"""Blob store interface for image persistence."""

from typing import Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class BlobStore(Protocol):
    """Abstract interface for a namespaced key-value blob store.

    Each key holds a binary payload together with a flat mapping of string
    metadata. Implementations can use various backends such as process
    memory, the local filesystem or a SQL database.

    Stored objects are create-and-read only: there is no update or delete.
    """

    def put(self, key: str, content: bytes, metadata: Mapping[str, str]) -> None:
        """Store a payload and its metadata under a key.

        Args:
            key: Storage key of the object.
            content: Raw bytes to store.
            metadata: String-to-string metadata stored alongside the payload.

        Raises:
            ValueError: If the key is empty.
            StorageError: If the object cannot be written.
        """
        ...

    def get(self, key: str) -> Optional[bytes]:
        """Read the payload stored under a key.

        Returns:
            Optional[bytes]: The payload, or None if the key is absent.

        Raises:
            StorageError: If the payload cannot be read.
        """
        ...

    def get_metadata(self, key: str) -> Optional[dict[str, str]]:
        """Read the metadata stored under a key.

        Returns:
            Optional[dict[str, str]]: The metadata, or None if the key is absent.

        Raises:
            StorageError: If the metadata cannot be read.
        """
        ...

    def list_keys(self) -> list[str]:
        """List every key in the store, in insertion order.

        Raises:
            StorageError: If the store cannot be enumerated.
        """
        ...


class StorageError(Exception):
    """Base exception for storage-related errors."""
    pass
