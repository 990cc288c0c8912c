"""Database models for the image uploads service."""

from .db import Base, StoredBlob

__all__ = ["Base", "StoredBlob"]
