"""
Upload validation and storage-key naming for Tubely.

This module holds the checks every upload passes before anything is persisted:
- Video identifier shape (route parameter)
- Declared content type against the per-kind allow list
- Declared and streamed size against the configured limit

It also generates storage keys. Keys come from 32 bytes of ``secrets``
randomness and never contain any part of the client filename or id, so they
cannot collide in practice and cannot traverse directories.
"""

import base64
import re
import secrets

from tubely.core.errors import BadRequestError


# =============================================================================
# CONSTANTS - Size Limits
# =============================================================================

BYTES_PER_KB: int = 1024

# Read/write granularity when streaming an upload
CHUNK_SIZE: int = BYTES_PER_KB * BYTES_PER_KB  # 1 MB

# Random bytes behind every storage key (256 bits)
KEY_ENTROPY_BYTES: int = 32


# =============================================================================
# CONSTANTS - Content Types
# =============================================================================

VIDEO_CONTENT_TYPES: set[str] = {"video/mp4"}

# Types accepted when thumbnails are persisted to disk or S3
THUMBNAIL_CONTENT_TYPES: set[str] = {"image/jpeg", "image/png"}

# The in-memory registry serves bytes back verbatim, so it accepts more
REGISTRY_THUMBNAIL_CONTENT_TYPES: set[str] = THUMBNAIL_CONTENT_TYPES | {
    "image/gif",
    "image/webp",
}


# =============================================================================
# CONSTANTS - Identifiers
# =============================================================================

MAX_VIDEO_ID_LENGTH: int = 64

_VIDEO_ID_REGEX = re.compile(r"^[A-Za-z0-9_-]+$")


# =============================================================================
# VALIDATION
# =============================================================================


def validate_video_id(video_id: str | None) -> str:
    """
    Check that a route identifier is a plausible video record id.

    Raises:
        BadRequestError: If the id is empty, longer than 64 characters, or
            contains anything besides letters, digits, ``_`` and ``-``.
    """
    if not video_id:
        raise BadRequestError("Missing video ID")
    if len(video_id) > MAX_VIDEO_ID_LENGTH or not _VIDEO_ID_REGEX.match(video_id):
        raise BadRequestError(f"Invalid video ID: {video_id!r}")
    return video_id


def normalize_content_type(content_type: str | None) -> str:
    """
    Reduce a Content-Type header value to its lowercase ``type/subtype``.

    Example:
        >>> normalize_content_type("Image/PNG; charset=binary")
        'image/png'
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def validate_content_type(content_type: str | None, allowed: set[str]) -> str:
    """
    Validate the declared media type of an upload.

    Returns:
        str: The normalized content type.

    Raises:
        BadRequestError: If the type is missing or not in ``allowed``.
    """
    normalized = normalize_content_type(content_type)
    if normalized not in allowed:
        raise BadRequestError(
            f"Unsupported content type '{content_type or ''}'. "
            f"Allowed types: {', '.join(sorted(allowed))}"
        )
    return normalized


def validate_upload_size(size: int | None, max_size: int) -> None:
    """
    Validate an upload size against ``max_size`` (inclusive).

    ``None`` means the client did not declare a size; the caller re-checks
    while streaming.

    Raises:
        BadRequestError: If the size is negative or exceeds the limit.
    """
    if size is None:
        return
    if size < 0:
        raise BadRequestError("Invalid file size: cannot be negative")
    if size > max_size:
        raise BadRequestError(
            f"File size ({format_file_size(size)}) exceeds maximum allowed "
            f"({format_file_size(max_size)})"
        )


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count for error messages.

    Example:
        >>> format_file_size(10 << 20)
        '10.00 MB'
    """
    bytes_per_mb = BYTES_PER_KB * BYTES_PER_KB
    bytes_per_gb = bytes_per_mb * BYTES_PER_KB

    if size_bytes < BYTES_PER_KB:
        return f"{size_bytes} B"
    if size_bytes < bytes_per_mb:
        return f"{size_bytes / BYTES_PER_KB:.2f} KB"
    if size_bytes < bytes_per_gb:
        return f"{size_bytes / bytes_per_mb:.2f} MB"
    return f"{size_bytes / bytes_per_gb:.2f} GB"


# =============================================================================
# STORAGE KEYS
# =============================================================================


def extension_for_content_type(content_type: str) -> str:
    """File extension for a media type: its subtype (``image/png`` -> ``png``)."""
    subtype = normalize_content_type(content_type).rpartition("/")[2]
    if not subtype:
        raise BadRequestError(f"Cannot derive a file extension from '{content_type}'")
    return subtype


def generate_video_key(orientation: str | None = None) -> str:
    """
    Storage key for a video: ``<orientation>/<64 hex chars>.mp4``.

    Without an orientation the key has no folder prefix.
    """
    name = f"{secrets.token_bytes(KEY_ENTROPY_BYTES).hex()}.mp4"
    return f"{orientation}/{name}" if orientation else name


def generate_thumbnail_key(content_type: str) -> str:
    """Storage key for a thumbnail: ``<43 base64url chars>.<ext>``."""
    token = base64.urlsafe_b64encode(secrets.token_bytes(KEY_ENTROPY_BYTES))
    return f"{token.decode('ascii').rstrip('=')}.{extension_for_content_type(content_type)}"
