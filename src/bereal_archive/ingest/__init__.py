"""Ingestion of BeReal exports into the canonical model and media map."""

from .archive_reader import Archive, ArchiveEntry, open_archive
from .config import IngestConfig
from .conversations import extract_conversations
from .event_log import decode_event_log
from .inputs import InputFile, load_input
from .media_extractor import ExtractionStats, MediaExtractor
from .media_map import MediaBlob, MediaMap
from .normalizer import build_data, read_source_files
from .pipeline import IngestionResult, ingest_export
from .progress import CancellationToken, ProgressEvent, ProgressReporter, QueueProgressSink
from .session import IngestionSession

__all__ = [
    'Archive',
    'ArchiveEntry',
    'open_archive',
    'IngestConfig',
    'extract_conversations',
    'decode_event_log',
    'InputFile',
    'load_input',
    'ExtractionStats',
    'MediaExtractor',
    'MediaBlob',
    'MediaMap',
    'build_data',
    'read_source_files',
    'IngestionResult',
    'ingest_export',
    'CancellationToken',
    'ProgressEvent',
    'ProgressReporter',
    'QueueProgressSink',
    'IngestionSession',
]
