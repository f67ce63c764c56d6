"""Progress reporting and cancellation for ingestion.

Progress is an ordered stream of ``ProgressEvent`` values on a 0-100 scale.
Only the controlling thread reports; worker threads return results to it.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Callable, Iterator, List, Optional

from ..common.errors import IngestionCancelledError

logger = logging.getLogger(__name__)

# Stage boundaries on the 0-100 scale
STAGE_START = 2
STAGE_READING = 5
STAGE_DECOMPRESS = 10
STAGE_JSON = 25
STAGE_MAPPING = 40
STAGE_CONVERSATIONS = 50
STAGE_MEDIA = 60
STAGE_DONE = 100

MEDIA_SPAN = STAGE_DONE - STAGE_MEDIA


@dataclass(frozen=True)
class ProgressEvent:
    """One progress update.

    Attributes:
        total: Always 100
        loaded: Completed share, 0-100, non-decreasing within an ingestion
        message: Human-readable stage description
    """
    loaded: int
    message: str
    total: int = 100


ProgressCallback = Callable[[ProgressEvent], None]


def media_progress(done: int, total: int) -> int:
    """Map media extraction progress onto the 60-100 band.

    Rounds half up, so 1 of 8 entries (5.0) gives 65.
    """
    if total <= 0:
        return STAGE_DONE
    return STAGE_MEDIA + int(math.floor(done / total * MEDIA_SPAN + 0.5))


class ProgressReporter:
    """Forwards progress events to a callback, keeping ``loaded`` monotonic.

    Values below the last reported value are raised to it, values above 100
    are clamped to 100.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self.last_loaded = 0
        self.start_time = time.time()

    def report(self, loaded: int, message: str) -> ProgressEvent:
        loaded = min(max(loaded, self.last_loaded), STAGE_DONE)
        self.last_loaded = loaded

        event = ProgressEvent(loaded=loaded, message=message)
        logger.debug(f"Progress: {{'loaded': {loaded}, 'message': {message!r}}}")
        if self._callback is not None:
            self._callback(event)
        return event

    @property
    def elapsed_seconds(self) -> float:
        return time.time() - self.start_time


class QueueProgressSink:
    """Collects progress events into a queue for consumption by another thread.

    Usable directly as a ``ProgressCallback``. ``close()`` marks the end of
    the stream so ``events()`` terminates.
    """

    _END = object()

    def __init__(self, maxsize: int = 0):
        self._queue: Queue = Queue(maxsize=maxsize)

    def __call__(self, event: ProgressEvent) -> None:
        self._queue.put(event)

    def close(self) -> None:
        self._queue.put(self._END)

    def events(self, timeout: Optional[float] = None) -> Iterator[ProgressEvent]:
        """Yield events in order until the sink is closed.

        Args:
            timeout: Maximum wait per event; None blocks indefinitely

        Raises:
            queue.Empty: If no event arrives within ``timeout``
        """
        while True:
            item = self._queue.get(timeout=timeout)
            if item is self._END:
                return
            yield item

    def drain(self) -> List[ProgressEvent]:
        """Return every event currently queued without blocking."""
        drained = []
        while True:
            try:
                item = self._queue.get_nowait()
            except Empty:
                return drained
            if item is not self._END:
                drained.append(item)


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and an ingestion."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds, waking early on cancellation.

        Returns:
            True if cancelled
        """
        return self._event.wait(timeout)

    def raise_if_cancelled(self, stage: str = "") -> None:
        if self._event.is_set():
            raise IngestionCancelledError("Ingestion was cancelled", stage=stage)
