"""Pydantic schemas for stored metadata and request/response validation."""

from .image import (
    ErrorResponse,
    ImageDescriptor,
    ImageListResponse,
    ImageMetadata,
    ImageUploadRequest,
    ImageUploadResponse,
    format_timestamp,
    parse_timestamp,
)

__all__ = [
    "ImageMetadata",
    "ImageUploadRequest",
    "ImageUploadResponse",
    "ImageDescriptor",
    "ImageListResponse",
    "ErrorResponse",
    "format_timestamp",
    "parse_timestamp",
]
