"""Image-related Pydantic schemas for stored metadata and API responses."""

from datetime import datetime, timezone
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, returning None if it is missing or malformed."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ImageMetadata(CamelModel):
    """Metadata stored alongside each uploaded image.

    The blob store only holds flat string mappings, so this record is
    serialized with ``to_store`` on write and rebuilt with ``from_store``
    on read. Reading back is tolerant: a missing or unparsable ``size``
    becomes 0 and a malformed timestamp becomes None.
    """

    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    file_id: Optional[str] = None
    size: int = Field(0, ge=0)

    @field_serializer("uploaded_at")
    def serialize_uploaded_at(self, value: Optional[datetime]) -> Optional[str]:
        return format_timestamp(value) if value is not None else None

    def to_store(self) -> dict[str, str]:
        """Serialize to the string mapping kept by the blob store."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        return {key: str(value) for key, value in data.items()}

    @classmethod
    def from_store(cls, metadata: Optional[Mapping[str, str]]) -> "ImageMetadata":
        """Rebuild the record from a blob store mapping (which may be None)."""
        metadata = metadata or {}

        try:
            size = int(metadata.get("size", 0))
        except (TypeError, ValueError):
            size = 0

        return cls(
            original_name=metadata.get("originalName"),
            mime_type=metadata.get("mimeType"),
            uploaded_at=parse_timestamp(metadata.get("uploadedAt")),
            file_id=metadata.get("fileId"),
            size=max(size, 0),
        )


class ImageUploadRequest(CamelModel):
    """Request body for an image upload.

    Only used for API documentation: the endpoint parses the raw body itself
    so that malformed JSON gets the service's own error message.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "image": "data:image/png;base64,iVBORw0KGgo=",
                    "filename": "photo.png"
                }
            ]
        }
    )

    image: str = Field(
        ...,
        description="Image encoded as a data URI (data:<mime>;base64,<data>)"
    )
    filename: Optional[str] = Field(
        None,
        description="Original client-side file name; its extension is kept in the storage key"
    )


class ImageUploadResponse(CamelModel):
    """Response model for a successful image upload.

    The ``filename`` is the storage key to pass to the fetch endpoint; the
    ``url`` already points there.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "success": True,
                    "message": "Image uploaded successfully",
                    "fileId": "9f86d081884c7d659a2feaa0c55ad015",
                    "filename": "9f86d081884c7d659a2feaa0c55ad015.png",
                    "originalName": "photo.png",
                    "size": 8,
                    "mimeType": "image/png",
                    "url": "https://example.com/api/get-image?filename=9f86d081884c7d659a2feaa0c55ad015.png",
                    "uploadedAt": "2024-01-01T12:00:00.000Z"
                }
            ]
        }
    )

    success: bool = True
    message: str = "Image uploaded successfully"
    file_id: str = Field(
        ...,
        description="Random identifier of the upload",
        min_length=32,
        max_length=32,
        pattern="^[a-f0-9]{32}$",
    )
    filename: str = Field(..., description="Storage key of the uploaded image")
    original_name: str
    size: int = Field(..., ge=0, description="Decoded size in bytes")
    mime_type: str
    url: str = Field(..., description="Absolute URL serving the stored image")
    uploaded_at: datetime

    @field_serializer("uploaded_at")
    def serialize_uploaded_at(self, value: datetime) -> str:
        return format_timestamp(value)


class ImageDescriptor(CamelModel):
    """One gallery entry: the stored metadata of an image plus its URL."""

    filename: str
    size: int = Field(0, ge=0)
    uploaded_at: Optional[datetime] = None
    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_id: Optional[str] = None
    url: str

    @field_serializer("uploaded_at")
    def serialize_uploaded_at(self, value: Optional[datetime]) -> Optional[str]:
        return format_timestamp(value) if value is not None else None


class ImageListResponse(CamelModel):
    """Response model for the gallery listing."""

    success: bool = True
    images: List[ImageDescriptor] = Field(default_factory=list)
    count: int = Field(0, ge=0)


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
    message: Optional[str] = None
