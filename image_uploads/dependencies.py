"""FastAPI dependency injection configuration."""

import logging

from fastapi import Depends

from image_uploads.db import get_session_factory
from image_uploads.repositories import ImageRepository
from image_uploads.storage import BlobStore, DatabaseBlobStore, InMemoryBlobStore, LocalBlobStore
from config import get_settings

logger = logging.getLogger(__name__)


# Global instance for the blob store
_blob_store: BlobStore | None = None


def get_blob_store() -> BlobStore:
    """Get the blob store selected by configuration.

    This function returns the correct store implementation based on
    the STORAGE_TYPE environment variable:
    - "memory": Uses InMemoryBlobStore (data lost on restart)
    - "local": Uses LocalBlobStore (files under STORAGE_ROOT)
    - "database": Uses DatabaseBlobStore (rows in DATABASE_URL)

    The instance is created once and shared by every request.

    Returns:
        BlobStore: The configured blob store instance
    """
    global _blob_store

    if _blob_store is None:
        settings = get_settings()

        if settings.storage_type == "memory":
            _blob_store = InMemoryBlobStore(name=settings.store_name)
        elif settings.storage_type == "database":
            _blob_store = DatabaseBlobStore(get_session_factory(), name=settings.store_name)
        else:
            _blob_store = LocalBlobStore(name=settings.store_name)
        logger.info(f"Created {settings.storage_type} blob store: {settings.store_name}")

    return _blob_store


def get_image_repository(store: BlobStore = Depends(get_blob_store)) -> ImageRepository:
    """Get an ImageRepository bound to the configured blob store.

    Args:
        store: Blob store from the get_blob_store dependency

    Returns:
        ImageRepository: Repository for image operations
    """
    return ImageRepository(store)
