"""SQLAlchemy database models."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, LargeBinary, String, UniqueConstraint
from sqlalchemy.orm import declarative_base

# Create the declarative base
Base = declarative_base()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StoredBlob(Base):
    """Model representing one object of a namespaced blob store.

    The surrogate integer primary key preserves insertion order for listing.
    """
    __tablename__ = "blobs"
    __table_args__ = (
        UniqueConstraint("store", "key", name="uq_blobs_store_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Namespace the object belongs to (e.g. "image-uploads")
    store = Column(String(255), nullable=False, index=True)

    # Opaque storage key within the namespace
    key = Column(String(512), nullable=False)

    data = Column(LargeBinary, nullable=False)

    # "metadata" is reserved on declarative classes
    attributes = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)

    def __repr__(self) -> str:
        return f"<StoredBlob(store={self.store}, key={self.key})>"
