"""Batched, bounded-parallel extraction of archive media into a MediaMap.

Entries are decoded in fixed-size batches on a thread pool. Workers only
read and sniff bytes; the controlling thread merges results into the media
map, counts progress and records failures, so both the map and the progress
stream have a single writer.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..common.errors import EntryNotFoundError, EntryReadError
from ..common.mime_detector import detect_mime_type
from ..common.path_utils import normalize_media_path
from ..models import IngestionWarning
from .archive_reader import Archive, ArchiveEntry
from .config import IngestConfig
from .media_map import MediaBlob, MediaMap
from .progress import CancellationToken, ProgressReporter, media_progress

logger = logging.getLogger(__name__)


@dataclass
class ExtractionStats:
    """Counters for one extraction run.

    Attributes:
        enumerated: Media entries found under the media prefixes
        extracted: Entries decoded successfully
        dropped: Entries that failed to decode
        duplicates: Extracted entries whose canonical path was already taken
    """
    enumerated: int = 0
    extracted: int = 0
    dropped: int = 0
    duplicates: int = 0


def _warn(warnings: Optional[List[IngestionWarning]], kind: str, source: str, detail: str) -> None:
    if warnings is not None:
        warnings.append(IngestionWarning(kind, source, detail))


def decode_entry(archive: Archive, path: str) -> MediaBlob:
    """Read one entry and wrap it as a MediaBlob keyed by its canonical path.

    Runs on worker threads.
    """
    data = archive.read(path)
    return MediaBlob(
        path=normalize_media_path(path),
        data=data,
        mime_type=detect_mime_type(data, path),
    )


class MediaExtractor:
    """Extracts media entries from an archive in batches."""

    def __init__(self, config: Optional[IngestConfig] = None):
        self.config = config or IngestConfig()

    def list_media_entries(self, archive: Archive) -> List[ArchiveEntry]:
        """Non-directory entries under the configured media prefixes."""
        prefixes = tuple(self.config.media_prefixes)
        return [
            entry for entry in archive.list_entries()
            if not entry.is_directory and entry.path.startswith(prefixes)
        ]

    def extract(
        self,
        archive: Archive,
        media_map: MediaMap,
        reporter: Optional[ProgressReporter] = None,
        cancel_token: Optional[CancellationToken] = None,
        warnings: Optional[List[IngestionWarning]] = None,
    ) -> ExtractionStats:
        """Extract all media entries into ``media_map``.

        Args:
            archive: Opened export archive
            media_map: Destination map; blobs added before a cancellation stay
                in it and remain releasable
            reporter: Receives progress on the 60-100 band
            cancel_token: Checked between batches
            warnings: Receives a ``media_decode_failed`` warning per dropped entry
                and a ``duplicate_media`` warning per canonical-path collision

        Returns:
            ExtractionStats with extracted + dropped == enumerated

        Raises:
            IngestionCancelledError: If the token is cancelled between batches
        """
        entries = self.list_media_entries(archive)
        stats = ExtractionStats(enumerated=len(entries))
        total = stats.enumerated
        batch_size = self.config.media_batch_size
        interval = self.config.progress_interval

        logger.info(f"Extracting media: {{'entries': {total}, 'batch_size': {batch_size}}}")

        done = 0
        with ThreadPoolExecutor(max_workers=self.config.max_workers, thread_name_prefix="media") as executor:
            for start in range(0, total, batch_size):
                batch = entries[start:start + batch_size]
                futures: Dict[Future, str] = {
                    executor.submit(decode_entry, archive, entry.path): entry.path
                    for entry in batch
                }

                decoded: Dict[str, MediaBlob] = {}
                for future in as_completed(futures):
                    path = futures[future]
                    try:
                        decoded[path] = future.result()
                    except (EntryNotFoundError, EntryReadError) as e:
                        stats.dropped += 1
                        logger.warning(f"Failed to extract media: {{'path': {path!r}, 'error': {str(e)!r}}}")
                        _warn(warnings, 'media_decode_failed', path, str(e))

                    done += 1
                    if reporter is not None and (done % interval == 0 or done == total):
                        reporter.report(media_progress(done, total), f"Extracting media {done}/{total}")

                # The batch is complete: merge in archive order
                for entry in batch:
                    blob = decoded.get(entry.path)
                    if blob is None:
                        continue
                    stats.extracted += 1
                    if not media_map.add(blob):
                        stats.duplicates += 1
                        logger.warning(
                            f"Duplicate media path: {{'path': {entry.path!r}, 'key': {blob.path!r}}}"
                        )
                        _warn(
                            warnings, 'duplicate_media', entry.path, f"canonical path {blob.path} already extracted"
                        )

                if start + batch_size >= total:
                    break
                if cancel_token is not None:
                    cancel_token.wait(self.config.batch_pause_seconds)
                    cancel_token.raise_if_cancelled(stage="media")
                else:
                    time.sleep(self.config.batch_pause_seconds)

        logger.info(
            f"Media extraction complete: {{'enumerated': {stats.enumerated}, "
            f"'extracted': {stats.extracted}, 'dropped': {stats.dropped}, "
            f"'duplicates': {stats.duplicates}}}"
        )
        return stats
