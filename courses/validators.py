"""Upload validators for course thumbnails and lesson videos.

Checks use the uploaded size, the filename extension and a MIME guess
from the filename. No content sniffing (no libmagic dependency).
"""
from __future__ import annotations

import mimetypes
from pathlib import Path

from django.core.exceptions import ValidationError


THUMBNAIL_EXT = {".jpg", ".jpeg", ".png", ".webp", ".gif"}
THUMBNAIL_MAX_BYTES = 5 * 1024 * 1024

VIDEO_EXT = {".mp4", ".webm", ".mov"}
VIDEO_MIME = {"video/mp4", "video/webm", "video/quicktime"}
VIDEO_MAX_BYTES = 500 * 1024 * 1024


def _check(file, *, allowed_ext: set[str], max_bytes: int, label: str, mime_ok) -> None:
    size = getattr(file, "size", None)
    if size is not None and size > max_bytes:
        raise ValidationError(f"{label} too large (max {max_bytes // (1024 * 1024)} MB)")
    name = getattr(file, "name", "") or ""
    if Path(name).suffix.lower() not in allowed_ext:
        raise ValidationError(f"Unsupported {label.lower()} type")
    guessed, _ = mimetypes.guess_type(name)
    if guessed and not mime_ok(guessed):
        raise ValidationError("Unsupported MIME type")


def validate_thumbnail(file) -> None:
    _check(
        file,
        allowed_ext=THUMBNAIL_EXT,
        max_bytes=THUMBNAIL_MAX_BYTES,
        label="Image",
        mime_ok=lambda m: m.startswith("image/"),
    )


def validate_video(file) -> None:
    _check(
        file,
        allowed_ext=VIDEO_EXT,
        max_bytes=VIDEO_MAX_BYTES,
        label="Video",
        mime_ok=lambda m: m in VIDEO_MIME,
    )
