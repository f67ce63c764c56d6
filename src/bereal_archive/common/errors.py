"""Error definitions for bereal_archive packages.

Errors fall into three groups:

- Fatal input errors (``InputError`` and subclasses) abort an ingestion call.
- Per-file and per-entry problems are never raised to the caller; they are
  recorded as ``IngestionWarning`` records instead.
- Export errors (``ExportError`` and subclasses) are raised by the compositor.
"""

from typing import Any, Dict


class BeRealArchiveError(Exception):
    """Base exception for all bereal_archive errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class InputError(BeRealArchiveError):
    """A user-supplied input cannot be used. Aborts ingestion."""
    pass


class MissingInputError(InputError):
    """One of the two required input files was not supplied."""
    pass


class InvalidFileTypeError(InputError):
    """Input file has the wrong suffix and content type."""
    pass


class InputTooLargeError(InputError):
    """Input file exceeds the configured size limit."""
    pass


class InputReadError(InputError):
    """Input file bytes could not be read."""
    pass


class ArchiveCorruptError(InputError):
    """The zip container is corrupted or not a zip file."""
    pass


class LogDecompressionError(InputError):
    """The gzip event log could not be decompressed or parsed."""
    pass


class EntryNotFoundError(BeRealArchiveError):
    """Requested path does not exist in the archive."""
    pass


class EntryReadError(BeRealArchiveError):
    """An entry exists but its bytes cannot be decompressed or decrypted."""
    pass


class IngestionCancelledError(BeRealArchiveError):
    """Ingestion was cancelled through its cancellation token."""
    pass


class ExportError(BeRealArchiveError):
    """Export of captures failed."""
    pass


class MissingMediaError(ExportError):
    """A capture lacks the media required for the requested export."""
    pass


class CompositingError(ExportError):
    """Images could not be decoded or composited."""
    pass


def classify_error(exception: Exception) -> str:
    """
    Classify an exception into an error category.

    Args:
        exception: The exception to classify

    Returns:
        Error category string: 'too_large', 'invalid_type', 'missing_input',
        'read_failed', 'corrupt_archive', 'corrupt_log', 'cancelled',
        'missing_media', 'compositing' or 'unknown'
    """
    if isinstance(exception, InputTooLargeError):
        return 'too_large'
    elif isinstance(exception, InvalidFileTypeError):
        return 'invalid_type'
    elif isinstance(exception, MissingInputError):
        return 'missing_input'
    elif isinstance(exception, InputReadError):
        return 'read_failed'
    elif isinstance(exception, (ArchiveCorruptError, EntryReadError)):
        return 'corrupt_archive'
    elif isinstance(exception, LogDecompressionError):
        return 'corrupt_log'
    elif isinstance(exception, IngestionCancelledError):
        return 'cancelled'
    elif isinstance(exception, MissingMediaError):
        return 'missing_media'
    elif isinstance(exception, CompositingError):
        return 'compositing'
    elif isinstance(exception, PermissionError):
        return 'read_failed'
    elif isinstance(exception, OSError):
        return 'read_failed'
    else:
        return 'unknown'


USER_MESSAGES: Dict[str, str] = {
    'too_large': "File is too large. Please use files smaller than {limit_mb}MB.",
    'invalid_type': "Invalid file format. Please select the correct BeReal export files.",
    'missing_input': "Please select both a ZIP file and a GZ file.",
    'read_failed': "Failed to read the file. Please try again or select a different file.",
    'corrupt_archive': "The ZIP file appears to be corrupted or invalid. Please try again.",
    'corrupt_log': "The GZ file appears to be corrupted or invalid. Please try again.",
    'cancelled': "Loading was cancelled.",
    'missing_media': "Missing required media for download.",
    'compositing': "Failed to create the merged image.",
}


def user_message(exception: Exception) -> str:
    """Map an exception to a short, user-actionable message.

    Unknown errors fall back to the exception text.
    """
    category = classify_error(exception)
    template = USER_MESSAGES.get(category)
    if template is None:
        return str(exception) or "An unknown error occurred during parsing."

    context = getattr(exception, 'context', {})
    return template.format(limit_mb=context.get('limit_mb', 500))
