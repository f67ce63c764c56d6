"""Validation and loading of the two user-supplied input files."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from ..common.errors import (
    InputReadError,
    InputTooLargeError,
    InvalidFileTypeError,
    MissingInputError,
)

logger = logging.getLogger(__name__)

ZIP_CONTENT_TYPES = ("application/zip", "application/x-zip-compressed")
GZIP_CONTENT_TYPES = ("application/gzip", "application/x-gzip")


@dataclass(frozen=True)
class InputFile:
    """An input file as supplied by a caller.

    Attributes:
        name: File name, used for suffix validation
        data: Raw file bytes
        content_type: Declared content type, if the caller knows one
    """
    name: str
    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


InputSource = Union[InputFile, Path, str]


def _matches(name: str, content_type: Optional[str], suffix: str, content_types: Tuple[str, ...]) -> bool:
    if name.lower().endswith(suffix):
        return True
    return bool(content_type) and any(t in content_type for t in content_types)


def load_input(
    source: Optional[InputSource],
    kind: str,
    max_bytes: int,
) -> InputFile:
    """Validate an input file and return its bytes.

    Size is checked before the file is read when ``source`` is a path, so
    oversized inputs are rejected without loading them.

    Args:
        source: InputFile, or a filesystem path
        kind: 'zip' or 'gz'
        max_bytes: Size limit in bytes

    Returns:
        Loaded InputFile

    Raises:
        MissingInputError: If source is None
        InvalidFileTypeError: If neither suffix nor content type match ``kind``
        InputTooLargeError: If the file exceeds ``max_bytes``
        InputReadError: If the file cannot be read
    """
    if source is None:
        raise MissingInputError("Both zip and gz files are required", kind=kind)

    if kind == "zip":
        suffix, content_types = ".zip", ZIP_CONTENT_TYPES
    elif kind == "gz":
        suffix, content_types = ".gz", GZIP_CONTENT_TYPES
    else:
        raise ValueError(f"Unknown input kind: {kind!r}")

    limit_mb = max_bytes // (1024 * 1024)

    if isinstance(source, InputFile):
        if not _matches(source.name, source.content_type, suffix, content_types):
            raise InvalidFileTypeError(
                f"Invalid file type. Expected a {suffix} file: {source.name}",
                name=source.name,
                content_type=source.content_type,
            )
        if source.size > max_bytes:
            raise InputTooLargeError(
                f"File size exceeds {limit_mb}MB: {source.name}",
                name=source.name,
                size=source.size,
                limit_mb=limit_mb,
            )
        return source

    path = Path(source)
    if not _matches(path.name, None, suffix, content_types):
        raise InvalidFileTypeError(
            f"Invalid file type. Expected a {suffix} file: {path.name}",
            name=path.name,
        )

    try:
        size = path.stat().st_size
        if size > max_bytes:
            raise InputTooLargeError(
                f"File size exceeds {limit_mb}MB: {path.name}",
                name=path.name,
                size=size,
                limit_mb=limit_mb,
            )
        data = path.read_bytes()
    except OSError as e:
        raise InputReadError(f"Failed to read file: {path.name}", path=str(path), error=str(e)) from e

    logger.debug(f"Loaded input file: {{'path': {str(path)!r}, 'size': {size}}}")
    return InputFile(name=path.name, data=data)
