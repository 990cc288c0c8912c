"""SQLAlchemy implementation of BlobStore."""
import logging
from typing import Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from image_uploads.models.db import StoredBlob

from .base import BlobStore, StorageError

logger = logging.getLogger(__name__)


class DatabaseBlobStore(BlobStore):
    """Blob store backed by a SQL table.

    Every operation opens its own session, so a single instance can be
    shared across request threads. Data is persisted and will survive
    application restarts.
    """

    def __init__(self, session_factory: sessionmaker, name: str = "image-uploads"):
        """Initialize the store.

        Args:
            session_factory: Factory producing sessions bound to the blob database.
            name: Namespace of this store; rows of other namespaces are never visible.
        """
        self.session_factory = session_factory
        self.name = name
        logger.info(f"Initialized DatabaseBlobStore: {self.name}")

    def _get_row(self, db, key: str) -> Optional[StoredBlob]:
        return (
            db.query(StoredBlob)
            .filter(StoredBlob.store == self.name, StoredBlob.key == key)
            .first()
        )

    def put(self, key: str, content: bytes, metadata: Mapping[str, str]) -> None:
        if not key:
            raise ValueError("Storage key cannot be empty")

        attributes = {str(k): str(v) for k, v in metadata.items()}
        with self.session_factory() as db:
            try:
                row = self._get_row(db, key)
                if row is None:
                    db.add(StoredBlob(store=self.name, key=key, data=bytes(content), attributes=attributes))
                else:
                    row.data = bytes(content)
                    row.attributes = attributes
                db.commit()
                logger.debug(f"Stored blob {key} ({len(content)} bytes)")
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to save blob {key}: {e}")
                raise StorageError(f"Failed to save blob: {e}")

    def get(self, key: str) -> Optional[bytes]:
        if not key:
            return None

        with self.session_factory() as db:
            try:
                row = self._get_row(db, key)
            except SQLAlchemyError as e:
                logger.error(f"Failed to read blob {key}: {e}")
                raise StorageError(f"Failed to read blob: {e}")
            return bytes(row.data) if row is not None else None

    def get_metadata(self, key: str) -> Optional[dict[str, str]]:
        if not key:
            return None

        with self.session_factory() as db:
            try:
                row = self._get_row(db, key)
            except SQLAlchemyError as e:
                logger.error(f"Failed to read metadata for {key}: {e}")
                raise StorageError(f"Failed to read metadata: {e}")
            if row is None:
                return None
            return {str(k): str(v) for k, v in (row.attributes or {}).items()}

    def list_keys(self) -> list[str]:
        with self.session_factory() as db:
            try:
                rows = (
                    db.query(StoredBlob.key)
                    .filter(StoredBlob.store == self.name)
                    .order_by(StoredBlob.id)
                    .all()
                )
            except SQLAlchemyError as e:
                logger.error(f"Failed to list blobs in {self.name}: {e}")
                raise StorageError(f"Failed to list blobs: {e}")
            return [row.key for row in rows]
