"""Path utilities for media paths stored in BeReal exports."""

import re
from typing import Optional

# BeReal injects a storage-bucket id between the logical folder and the
# filename, e.g. "Photos/<28 char id>/bereal/abc.webp".
BUCKET_SEGMENT_PATTERN = re.compile(r'^[A-Za-z0-9]{20,}')

VIDEO_EXTENSIONS = ('.mp4', '.mov', '.m4v', '.webm')


def normalize_media_path(path: Optional[str]) -> str:
    """
    Canonicalize a media path so it can be used as a media map key.

    Applies, in order:
    - strip the leading "/"
    - drop the second segment when it looks like an opaque bucket id
      (alphanumeric, 20+ characters) and at least three segments exist

    Both rules repeat until nothing changes, so the function is idempotent
    even for "//x" or for stacked bucket segments.

    Args:
        path: Raw path from a JSON record (may be None or empty)

    Returns:
        Canonical path; "" for empty input

    Examples:
        >>> normalize_media_path("/Photos/abcdefghij0123456789XY/bereal/a.webp")
        'Photos/bereal/a.webp'
        >>> normalize_media_path("Photos/bereal/a.webp")
        'Photos/bereal/a.webp'
    """
    if not path:
        return ""

    cleaned = path.lstrip('/')

    segments = cleaned.split('/')
    while len(segments) > 2 and BUCKET_SEGMENT_PATTERN.match(segments[1]):
        del segments[1]

    return '/'.join(segments)


def is_video_path(path: str) -> bool:
    """Check whether a path has a video file extension."""
    return path.lower().endswith(VIDEO_EXTENSIONS)


def infer_media_type(path: str) -> str:
    """Infer 'video' or 'image' from the file extension."""
    return 'video' if is_video_path(path) else 'image'
