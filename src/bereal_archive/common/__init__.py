"""Common utilities shared by the ingest and export packages."""

from .config import ConfigLoader
from .logging import setup_logging, LogContext
from .logging_config import LoggingConfig
from .errors import (
    BeRealArchiveError, InputError, MissingInputError, InvalidFileTypeError,
    InputTooLargeError, InputReadError, ArchiveCorruptError,
    LogDecompressionError, EntryNotFoundError, EntryReadError, IngestionCancelledError,
    ExportError, MissingMediaError, CompositingError,
    classify_error, user_message,
)
from .mime_detector import detect_mime_type, is_video_mime_type
from .path_utils import normalize_media_path, is_video_path, infer_media_type
from .timestamps import EPOCH, parse_timestamp, parse_timestamp_or

__all__ = [
    'ConfigLoader',
    'LoggingConfig',
    'setup_logging',
    'LogContext',
    'BeRealArchiveError',
    'InputError',
    'MissingInputError',
    'InvalidFileTypeError',
    'InputTooLargeError',
    'InputReadError',
    'ArchiveCorruptError',
    'LogDecompressionError',
    'EntryNotFoundError',
    'EntryReadError',
    'IngestionCancelledError',
    'ExportError',
    'MissingMediaError',
    'CompositingError',
    'classify_error',
    'user_message',
    'detect_mime_type',
    'is_video_mime_type',
    'normalize_media_path',
    'is_video_path',
    'infer_media_type',
    'EPOCH',
    'parse_timestamp',
    'parse_timestamp_or',
]
