"""File extension and content type helpers."""

from __future__ import annotations

import mimetypes
from enum import StrEnum
from pathlib import PurePosixPath


class MediaType(StrEnum):
    IMAGE = "image"
    VIDEO = "video"
    OTHER = "other"


IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp", "gif", "bmp", "tif", "tiff"})
VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "m4v", "webm", "avi", "mkv"})

_CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "m4v": "video/x-m4v",
    "webm": "video/webm",
}

# Pillow format name -> canonical file extension
FORMAT_EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "WEBP": "webp",
    "GIF": "gif",
}


def file_extension(filename: str) -> str:
    """Return the lower-cased extension without the leading dot."""
    return PurePosixPath(filename.strip()).suffix.lower().lstrip(".")


def classify(extension: str) -> MediaType:
    ext = extension.lower().lstrip(".")
    if ext in IMAGE_EXTENSIONS:
        return MediaType.IMAGE
    if ext in VIDEO_EXTENSIONS:
        return MediaType.VIDEO
    return MediaType.OTHER


def content_type_for(key_or_filename: str) -> str:
    """Guess the content type of an asset from its extension."""
    ext = file_extension(key_or_filename)
    if ext in _CONTENT_TYPES:
        return _CONTENT_TYPES[ext]
    guessed, _ = mimetypes.guess_type(f"asset.{ext}")
    return guessed or "application/octet-stream"


def content_type_for_format(image_format: str) -> str:
    return content_type_for(f"x.{FORMAT_EXTENSIONS.get(image_format.upper(), 'bin')}")
