"""Decoding of base64 image data URIs sent by the upload form."""
import base64
import binascii
import re
from dataclasses import dataclass

DATA_URI_PREFIX = "data:image/"

_MIME_TYPE_PATTERN = re.compile(r"data:([^;]+)")


class InvalidImageDataError(ValueError):
    """Raised when an upload payload is not a usable image data URI."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class DecodedImage:
    """Raw bytes and MIME type extracted from a data URI."""
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def decode_image_data_uri(value: object, default_mime_type: str = "image/jpeg") -> DecodedImage:
    """Decode a ``data:<mime>;base64,<data>`` string.

    The MIME type is read from the header before the first comma and falls
    back to ``default_mime_type`` when the header carries none.

    Args:
        value: The ``image`` field of the upload body.
        default_mime_type: MIME type used when the header has none.

    Returns:
        DecodedImage: The decoded payload.

    Raises:
        InvalidImageDataError: If the value is not an image data URI or its
            base64 segment is missing or undecodable.
    """
    if not isinstance(value, str) or not value.startswith(DATA_URI_PREFIX):
        raise InvalidImageDataError("Invalid image data format")

    header, _, data = value.partition(",")
    if not data:
        raise InvalidImageDataError("Invalid base64 image data")

    match = _MIME_TYPE_PATTERN.match(header)
    mime_type = match.group(1) if match else default_mime_type

    try:
        content = base64.b64decode(data)
    except (binascii.Error, ValueError):
        raise InvalidImageDataError("Invalid base64 image data")

    if not content:
        raise InvalidImageDataError("Invalid base64 image data")

    return DecodedImage(mime_type=mime_type, content=content)
