"""Blob store module for image persistence."""

from .base import BlobStore, StorageError
from .database import DatabaseBlobStore
from .local import LocalBlobStore
from .memory import InMemoryBlobStore

__all__ = ["BlobStore", "StorageError", "InMemoryBlobStore", "LocalBlobStore", "DatabaseBlobStore"]
