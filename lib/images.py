# =============================================================================
# lib/images.py - Image Payload Helpers
# =============================================================================
# Helpers for the image payloads that move between the web client, Segmind
# and Supabase Storage: data URLs, raw base64 and magic-byte sniffing.
# =============================================================================

import base64
import binascii


class ImagePayloadError(ValueError):
    """Raised when an image payload can't be decoded."""


MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}


def detect_image_type(data: bytes) -> str:
    """
    Detect an image MIME type from its magic bytes.

    Defaults to image/jpeg for anything unrecognised.
    """
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"GIF87a") or data.startswith(b"GIF89a"):
        return "image/gif"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


def extension_for(mime: str) -> str:
    return MIME_EXTENSIONS.get(mime, "jpg")


def is_data_url(value: str | None) -> bool:
    return bool(value) and value.startswith("data:")


def parse_data_url(url: str) -> tuple[bytes, str]:
    """
    Decode a data URL into bytes and a MIME type.

    The MIME type comes from the bytes, not the declared header.

    Raises:
        ImagePayloadError: If the URL isn't a base64 data URL
    """
    if not is_data_url(url) or "," not in url:
        raise ImagePayloadError("Not a data URL")

    header, encoded = url.split(",", 1)
    if ";base64" not in header:
        raise ImagePayloadError("Only base64 data URLs are supported")

    try:
        data = base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ImagePayloadError(f"Invalid base64 payload: {e}") from e

    if not data:
        raise ImagePayloadError("Empty image payload")

    return data, detect_image_type(data)


def to_data_url(data: bytes, mime: str = "image/webp") -> str:
    """Encode bytes as a base64 data URL."""
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def normalize_base64_image(value: str, mime: str = "image/webp") -> str:
    """Return a data URL for either a data URL or raw base64 text."""
    if is_data_url(value):
        return value
    return f"data:{mime};base64,{value}"
