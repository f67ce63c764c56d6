"""Decoder for the gzip-compressed analytics event log."""

import gzip
import json
import logging
import zlib
from typing import Any, List

from ..common.errors import LogDecompressionError

logger = logging.getLogger(__name__)


def decode_event_log(data: bytes) -> List[Any]:
    """
    Decompress and parse a newline-delimited JSON event log.

    Each non-blank line is one independent JSON document. A malformed line
    fails the whole log: an event is the smallest unit the format has.

    Args:
        data: gzip-compressed bytes

    Returns:
        Decoded events in file order

    Raises:
        LogDecompressionError: If decompression, UTF-8 decoding or any
            line's JSON parsing fails
    """
    try:
        text = gzip.decompress(data).decode("utf-8")
    except (OSError, EOFError, zlib.error) as e:
        raise LogDecompressionError(
            f"Failed to decompress event log: {e}",
            size=len(data),
        ) from e
    except UnicodeDecodeError as e:
        raise LogDecompressionError(
            "Event log is not valid UTF-8 text",
            position=e.start,
        ) from e

    events = []
    for line_number, line in enumerate(text.split("\n"), start=1):
        if not line.strip():
            continue
        try:
            events.append(json.loads(line))
        except json.JSONDecodeError as e:
            raise LogDecompressionError(
                f"Malformed event on line {line_number}: {e.msg}",
                line=line_number,
            ) from e

    logger.debug(f"Decoded event log: {{'events': {len(events)}}}")
    return events
