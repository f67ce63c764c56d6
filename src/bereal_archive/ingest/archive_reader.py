"""In-memory access to the BeReal export zip.

BeReal exports are sometimes wrapped in a single top-level folder and
sometimes not. ``Archive`` hides the difference: every path it accepts or
returns is relative to the data root (the folder holding ``user.json``).
"""

import io
import json
import logging
import zipfile
import zlib
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from ..common.errors import ArchiveCorruptError, EntryNotFoundError, EntryReadError

logger = logging.getLogger(__name__)

# Folders that hold data themselves and are never a wrapper
DATA_FOLDERS = frozenset({"Photos", "conversations", "profile-pictures"})

# Resource-fork folders added by the macOS archiver
IGNORED_PREFIXES = ("__MACOSX/",)

# Raised by ZipFile.read for a member that is listed but unreadable:
# unsupported compression method, encryption, truncated or corrupt data
MEMBER_READ_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    NotImplementedError,
    RuntimeError,
    EOFError,
    OSError,
)


@dataclass(frozen=True)
class ArchiveEntry:
    """A file or directory inside the archive.

    Attributes:
        path: Path relative to the data root, without trailing slash
        is_directory: True for explicit directory entries
        size: Uncompressed size in bytes (0 for directories)
    """
    path: str
    is_directory: bool
    size: int


def detect_wrapper(names: Iterable[str]) -> Optional[str]:
    """Find the single top-level folder that wraps all entries.

    Args:
        names: Raw member names from the zip

    Returns:
        Wrapper folder name, or None when the archive root is the data root
    """
    top_segments = set()
    for name in names:
        if name.startswith(IGNORED_PREFIXES):
            continue
        if '/' not in name:
            # A file at the archive root means there is no wrapper
            return None
        top_segments.add(name.split('/', 1)[0])

    if len(top_segments) != 1:
        return None

    (segment,) = top_segments
    if not segment or segment in DATA_FOLDERS:
        return None
    return segment


class Archive:
    """Read-only view of an opened export zip."""

    def __init__(self, zip_file: zipfile.ZipFile) -> None:
        self._zip = zip_file
        self.wrapper = detect_wrapper(zip_file.namelist())
        self._members: Dict[str, zipfile.ZipInfo] = {}

        prefix = f"{self.wrapper}/" if self.wrapper else ""
        for info in zip_file.infolist():
            name = info.filename
            if name.startswith(IGNORED_PREFIXES) or not name.startswith(prefix):
                continue
            relative = name[len(prefix):].rstrip('/')
            if relative:
                self._members[relative] = info

        logger.debug(
            f"Opened archive: {{'entries': {len(self._members)}, 'wrapper': {self.wrapper!r}}}"
        )

    def list_entries(self) -> List[ArchiveEntry]:
        """List all entries in archive order."""
        return [
            ArchiveEntry(path=path, is_directory=info.is_dir(), size=0 if info.is_dir() else info.file_size)
            for path, info in self._members.items()
        ]

    def __contains__(self, path: str) -> bool:
        info = self._members.get(path.lstrip('/'))
        return info is not None and not info.is_dir()

    def __len__(self) -> int:
        return len(self._members)

    def read(self, path: str) -> bytes:
        """Read a file's bytes.

        Args:
            path: Path relative to the data root

        Raises:
            EntryNotFoundError: If the path is missing or is a directory
            EntryReadError: If the member cannot be decompressed or decrypted
        """
        info = self._members.get(path.lstrip('/'))
        if info is None or info.is_dir():
            raise EntryNotFoundError(f"Entry not found in archive: {path}", path=path)
        try:
            return self._zip.read(info)
        except MEMBER_READ_ERRORS as e:
            raise EntryReadError(
                f"Could not read archive entry: {path}",
                path=path,
                compress_type=info.compress_type,
                error=str(e),
            ) from e

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        return self.read(path).decode(encoding)

    def read_json(self, path: str) -> Any:
        """Read and parse a JSON file.

        Raises:
            EntryNotFoundError: If the path is missing
            EntryReadError: If the member cannot be read
            ValueError: If the content is not valid UTF-8 JSON
        """
        # utf-8-sig tolerates a byte order mark
        return json.loads(self.read_text(path, encoding="utf-8-sig"))

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "Archive":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def open_archive(data: bytes) -> Archive:
    """Open zip bytes as an Archive.

    Raises:
        ArchiveCorruptError: If the bytes are not a readable zip container
    """
    try:
        zip_file = zipfile.ZipFile(io.BytesIO(data), 'r')
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError, OSError) as e:
        raise ArchiveCorruptError(
            "Could not access zip contents.",
            size=len(data),
            error=str(e),
        ) from e

    return Archive(zip_file)
