"""End-to-end ingestion of a BeReal export.

Stages and their progress boundaries:

1. Validate and read both input files (2 -> 5)
2. Open the archive and decompress the event log (10)
3. Parse the optional top-level JSON files concurrently (25)
4. Map raw JSON onto the canonical model (40)
5. Rebuild conversations (50)
6. Extract media into the media map (60 -> 100)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional

from ..common.errors import MissingInputError
from ..models import BeRealData, IngestionWarning
from .archive_reader import open_archive
from .config import IngestConfig
from .conversations import extract_conversations
from .event_log import decode_event_log
from .inputs import InputSource, load_input
from .media_extractor import ExtractionStats, MediaExtractor
from .media_map import MediaMap
from .normalizer import build_data, read_source_files
from .progress import (
    STAGE_CONVERSATIONS,
    STAGE_DECOMPRESS,
    STAGE_DONE,
    STAGE_JSON,
    STAGE_MAPPING,
    STAGE_MEDIA,
    STAGE_READING,
    STAGE_START,
    CancellationToken,
    ProgressCallback,
    ProgressReporter,
)

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    """Output of one ingestion.

    Attributes:
        data: Canonical aggregate
        media: Canonical path -> MediaBlob
        warnings: Every file or entry dropped along the way
        stats: Media extraction counters
    """
    data: BeRealData
    media: MediaMap
    warnings: List[IngestionWarning] = field(default_factory=list)
    stats: ExtractionStats = field(default_factory=ExtractionStats)


def ingest_export(
    zip_source: Optional[InputSource],
    log_source: Optional[InputSource],
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[IngestConfig] = None,
    cancel_token: Optional[CancellationToken] = None,
    media_map: Optional[MediaMap] = None,
) -> IngestionResult:
    """
    Ingest a BeReal export zip and its gzip event log.

    Args:
        zip_source: The export archive (InputFile or path)
        log_source: The gzip NDJSON event log (InputFile or path)
        on_progress: Receives ProgressEvents; ``loaded`` never decreases
        config: Ingestion tuning (defaults apply when omitted)
        cancel_token: Checked between stages and between media batches
        media_map: Map to fill; pass one in to keep blobs releasable if the
            ingestion is cancelled or fails part-way through media extraction

    Returns:
        IngestionResult with the aggregate, media map and warnings

    Raises:
        MissingInputError: If either input is absent
        InvalidFileTypeError: If an input has the wrong suffix / content type
        InputTooLargeError: If an input exceeds ``max_input_size_mb``
        InputReadError: If an input cannot be read
        ArchiveCorruptError: If the zip cannot be opened
        LogDecompressionError: If the event log cannot be decoded
        IngestionCancelledError: If ``cancel_token`` is cancelled
    """
    if zip_source is None or log_source is None:
        raise MissingInputError(
            "Both zip and gz files are required",
            zip=zip_source is not None,
            gz=log_source is not None,
        )

    config = config or IngestConfig()
    reporter = ProgressReporter(on_progress)
    media_map = media_map if media_map is not None else MediaMap()
    token = cancel_token or CancellationToken()
    warnings: List[IngestionWarning] = []

    reporter.report(STAGE_START, "Starting data parsing...")

    with ThreadPoolExecutor(max_workers=config.max_workers, thread_name_prefix="ingest") as executor:
        reporter.report(STAGE_READING, "Reading files...")
        zip_future = executor.submit(load_input, zip_source, "zip", config.max_input_size_bytes)
        log_future = executor.submit(load_input, log_source, "gz", config.max_input_size_bytes)
        zip_input = zip_future.result()
        log_input = log_future.result()
        token.raise_if_cancelled(stage="reading")

        reporter.report(STAGE_DECOMPRESS, "Decompressing and parsing data...")
        analytics_future = executor.submit(decode_event_log, log_input.data)
        archive = open_archive(zip_input.data)

        try:
            reporter.report(STAGE_JSON, "Parsing JSON files...")
            sources = read_source_files(archive, executor, warnings)
            analytics = analytics_future.result()
            token.raise_if_cancelled(stage="parsing")

            reporter.report(STAGE_MAPPING, "Mapping data structures...")
            data = build_data(sources, warnings, analytics=analytics)
            token.raise_if_cancelled(stage="mapping")

            reporter.report(STAGE_CONVERSATIONS, "Parsing conversations...")
            data.conversations = extract_conversations(archive, warnings)

            reporter.report(STAGE_MEDIA, "Extracting media...")
            stats = MediaExtractor(config).extract(
                archive,
                media_map,
                reporter=reporter,
                cancel_token=token,
                warnings=warnings,
            )
        finally:
            archive.close()

    reporter.report(STAGE_DONE, "Done!")

    logger.info(
        f"Ingestion complete: {{'captures': {len(data.captures())}, "
        f"'conversations': {len(data.conversations)}, 'media': {len(media_map)}, "
        f"'warnings': {len(warnings)}, 'elapsed_seconds': {reporter.elapsed_seconds:.2f}}}"
    )

    return IngestionResult(data=data, media=media_map, warnings=warnings, stats=stats)
