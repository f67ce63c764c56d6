"""In-memory media map: canonical archive path -> addressable byte blob."""

import logging
import threading
import uuid
from typing import Dict, Iterator, Optional

from ..models import Media

logger = logging.getLogger(__name__)


class MediaBlob:
    """Extracted media bytes with an opaque ``blob:`` reference.

    The bytes stay readable until ``release()`` is called; afterwards
    ``read()`` raises ``ValueError``.
    """

    def __init__(self, path: str, data: bytes, mime_type: str) -> None:
        self.ref = f"blob:{uuid.uuid4().hex}"
        self.path = path
        self.mime_type = mime_type
        self.size = len(data)
        self._data: Optional[bytes] = data

    @property
    def released(self) -> bool:
        return self._data is None

    def read(self) -> bytes:
        if self._data is None:
            raise ValueError(f"Media blob already released: {self.ref}")
        return self._data

    def release(self) -> None:
        self._data = None

    def __repr__(self) -> str:
        return f"MediaBlob(path={self.path!r}, mime_type={self.mime_type!r}, size={self.size})"


class MediaMap:
    """Mapping of canonical media path to MediaBlob.

    Entries are only ever added. The first blob added under a path wins.
    """

    def __init__(self) -> None:
        self._blobs: Dict[str, MediaBlob] = {}
        self._lock = threading.Lock()

    def add(self, blob: MediaBlob) -> bool:
        """Add a blob under its path.

        Returns:
            False if a blob is already stored under that path
        """
        with self._lock:
            if blob.path in self._blobs:
                logger.debug(f"Duplicate media path ignored: {{'path': {blob.path!r}}}")
                return False
            self._blobs[blob.path] = blob
            return True

    def get(self, path: str) -> Optional[MediaBlob]:
        return self._blobs.get(path)

    def __getitem__(self, path: str) -> MediaBlob:
        return self._blobs[path]

    def __contains__(self, path: object) -> bool:
        return path in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._blobs))

    def resolve(self, media: Optional[Media]) -> Optional[MediaBlob]:
        """Look up the blob for a Media record, if it was extracted."""
        if media is None or media.is_empty:
            return None
        return self._blobs.get(media.path)

    def release_all(self) -> int:
        """Release every blob and empty the map.

        Returns:
            Number of blobs released
        """
        with self._lock:
            blobs = list(self._blobs.values())
            self._blobs.clear()

        for blob in blobs:
            blob.release()

        if blobs:
            logger.debug(f"Released media blobs: {{'count': {len(blobs)}}}")
        return len(blobs)
