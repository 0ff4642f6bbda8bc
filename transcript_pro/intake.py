"""File acceptance checks run before any processing starts."""

import os
from typing import Optional

from .exceptions import FileValidationError

MAX_FILE_SIZE_BYTES = 2 * 1024 * 1024 * 1024

ACCEPTED_MIME_TYPES = (
    "audio/mp3",
    "audio/wav",
    "audio/mpeg",
    "video/mp4",
    "video/quicktime",
    "video/webm",
    "video/x-m4v",
)


def guess_mime_type_from_extension(path: str) -> str:
    """Guess the MIME type of a media file from its extension."""
    ext = os.path.splitext(path)[1].lower()
    if ext in (".mp3",):
        return "audio/mp3"
    if ext in (".wav",):
        return "audio/wav"
    if ext in (".mp4",):
        return "video/mp4"
    if ext in (".mov", ".qt"):
        return "video/quicktime"
    if ext in (".webm",):
        return "video/webm"
    if ext in (".m4v",):
        return "video/x-m4v"
    return "application/octet-stream"


def validate_file(path: str, mime_type: Optional[str] = None) -> str:
    """Check size and type; return the effective MIME type.

    Raises FileValidationError for anything the pipeline must not start on.
    """
    if not os.path.exists(path) or os.path.isdir(path):
        raise FileValidationError(f"Media file not found or is a directory: {path}")

    size = os.path.getsize(path)
    if size > MAX_FILE_SIZE_BYTES:
        raise FileValidationError(
            f"File is too large ({size / 1024 / 1024 / 1024:.2f}GB). Maximum size is 2GB."
        )

    effective = (mime_type or guess_mime_type_from_extension(path)).lower()
    if effective not in ACCEPTED_MIME_TYPES:
        raise FileValidationError(
            "Unsupported file type. Please upload MP3, WAV, MP4, MOV or WEBM."
        )
    return effective
