"""Repository implementations for data access."""

from .image import ImageRepository, StoredImage, derive_storage_key, generate_file_id

__all__ = [
    "ImageRepository",
    "StoredImage",
    "derive_storage_key",
    "generate_file_id",
]
