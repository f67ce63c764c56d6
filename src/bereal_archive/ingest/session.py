"""Ingestion session: owns the result of the most recent load.

A session holds at most one ingestion at a time. Starting a new load or
calling ``reset()`` releases every media blob of the previous one.
"""

import logging
import threading
import uuid
from typing import List, Optional

from ..common.errors import BeRealArchiveError, classify_error, user_message
from ..common.logging import LogContext
from ..models import BeRealData, IngestionWarning
from .config import IngestConfig
from .inputs import InputSource
from .media_map import MediaMap
from .pipeline import IngestionResult, ingest_export
from .progress import CancellationToken, ProgressCallback, ProgressEvent

logger = logging.getLogger(__name__)


class IngestionSession:
    """Stateful wrapper around ``ingest_export``.

    Attributes:
        data: Aggregate of the last successful load, or None
        media: Media map of the current load (empty before any load)
        warnings: Warnings of the last successful load
        error: User-facing message of the last failed load, or None
        error_category: ``classify_error`` category of the last failure
        progress: Last progress event seen
        is_loading: True while a load is running
    """

    def __init__(self, config: Optional[IngestConfig] = None):
        self.config = config or IngestConfig()
        self.data: Optional[BeRealData] = None
        self.media = MediaMap()
        self.warnings: List[IngestionWarning] = []
        self.error: Optional[str] = None
        self.error_category: Optional[str] = None
        self.progress: Optional[ProgressEvent] = None
        self.is_loading = False
        self.session_id: Optional[str] = None
        self._cancel_token: Optional[CancellationToken] = None
        self._lock = threading.Lock()

    def load_files(
        self,
        zip_source: Optional[InputSource],
        log_source: Optional[InputSource],
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional[IngestionResult]:
        """Replace the session contents with a fresh ingestion.

        Failures do not raise: the previous data is already released, and
        ``error`` holds a user-facing message.

        Returns:
            IngestionResult, or None when the load failed
        """
        with self._lock:
            if self.is_loading:
                raise RuntimeError("An ingestion is already running in this session")
            self.is_loading = True

        self.reset()
        self.session_id = uuid.uuid4().hex[:12]
        self._cancel_token = CancellationToken()

        def track(event: ProgressEvent) -> None:
            self.progress = event
            if on_progress is not None:
                on_progress(event)

        try:
            with LogContext(logger, session_id=self.session_id):
                logger.info(f"Starting ingestion: {{'session_id': {self.session_id!r}}}")
                try:
                    result = ingest_export(
                        zip_source,
                        log_source,
                        on_progress=track,
                        config=self.config,
                        cancel_token=self._cancel_token,
                        media_map=self.media,
                    )
                except (BeRealArchiveError, OSError) as e:
                    self.error_category = classify_error(e)
                    self.error = user_message(e)
                    logger.error(
                        f"Ingestion failed: {{'category': {self.error_category!r}, 'error': {str(e)!r}}}"
                    )
                    self.media.release_all()
                    return None
        finally:
            self.is_loading = False
            self._cancel_token = None

        self.data = result.data
        self.warnings = result.warnings
        return result

    def cancel(self) -> None:
        """Request cancellation of the running load, if any."""
        token = self._cancel_token
        if token is not None:
            token.cancel()

    def reset(self) -> None:
        """Release all media and clear data, error and progress."""
        released = self.media.release_all()
        self.media = MediaMap()
        self.data = None
        self.warnings = []
        self.error = None
        self.error_category = None
        self.progress = None
        if released:
            logger.debug(f"Session reset: {{'released_blobs': {released}}}")
