"""Timestamp parsing for BeReal export records."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp from an export record into an aware datetime.

    BeReal writes ISO 8601 strings such as "2023-05-01T12:00:03.000Z".
    Numeric values are treated as Unix seconds, or milliseconds when they
    are too large to be seconds. Naive results are assumed to be UTC.

    Args:
        value: Raw value from JSON

    Returns:
        Timezone-aware datetime, or None if the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str) or not value.strip():
        return None

    try:
        dt = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.debug(f"Could not parse timestamp: {{'value': {value!r}}}")
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_timestamp_or(value: Any, default: datetime) -> datetime:
    """Parse a timestamp, falling back to ``default``."""
    parsed = parse_timestamp(value)
    return parsed if parsed is not None else default
