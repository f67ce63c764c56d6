"""MIME type detection using filetype library (pure Python, cross-platform)."""

import mimetypes

import filetype

UNKNOWN_MIME_TYPE = 'application/octet-stream'

def detect_mime_type(data: bytes, path: str = "") -> str:
    """
    Detect the MIME type of in-memory file content.

    Magic bytes win; the file extension of ``path`` is only consulted when
    filetype cannot recognise the signature.

    Args:
        data: File content (only the leading bytes are inspected)
        path: Archive path, used for the extension fallback

    Returns:
        MIME type string (e.g., 'image/jpeg', 'video/mp4')
        Returns 'application/octet-stream' if type cannot be determined
    """
    kind = filetype.guess(data) if data else None
    if kind is not None:
        return kind.mime

    guessed, _ = mimetypes.guess_type(path) if path else (None, None)
    return guessed or UNKNOWN_MIME_TYPE


def is_video_mime_type(mime_type: str) -> bool:
    """Check if a MIME type represents a video."""
    return mime_type.startswith('video/')
