"""Structured logging utilities.

Every record carries the ingestion ``session_id`` (``-`` outside a session)
so that lines from concurrent worker threads can be told apart. Console
output uses one of three formats; file output is always JSON lines.
"""

import logging
import logging.handlers
import json
import sys
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from pathlib import Path

NO_SESSION = "-"

TEXT_FORMATS: Dict[str, str] = {
    "simple": "%(levelname)-8s | %(session_id)s | %(message)s",
    "detailed": (
        "%(asctime)s | %(levelname)-8s | %(session_id)s | %(threadName)s | "
        "%(name)s:%(lineno)d | %(message)s"
    ),
}


def _context_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "extra_fields", {})


class SessionFilter(logging.Filter):
    """Expose the LogContext session id as ``%(session_id)s``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _context_fields(record).get("session_id", NO_SESSION)
        return True


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
            "line": record.lineno,
            "session_id": None,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        log_data.update(_context_fields(record))
        return json.dumps(log_data, default=str)


def _console_formatter(format: str) -> logging.Formatter:
    if format == "json":
        return StructuredFormatter()
    return logging.Formatter(TEXT_FORMATS.get(format, TEXT_FORMATS["simple"]), datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(
    level: str = "INFO",
    format: str = "simple",
    log_file: Optional[Path] = None,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Format type (simple, detailed, json)
        log_file: Optional log file path
        max_file_size_mb: Max log file size in MB
        backup_count: Number of backup files to keep
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    # Console goes to stderr so stdout stays clean for --json output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.addFilter(SessionFilter())
    console_handler.setFormatter(_console_formatter(format))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    logging.getLogger("PIL").setLevel(logging.WARNING)


class LogContext:
    """Attach fields such as ``session_id`` to every record while active.

    The record factory is process-wide, so records emitted by ingestion worker
    threads carry the fields too. Nested contexts override outer fields.
    """

    def __init__(self, logger: logging.Logger, **fields: Any) -> None:
        self.logger = logger
        self.fields = fields
        self.old_factory = None

    def __enter__(self) -> "LogContext":
        self.old_factory = logging.getLogRecordFactory()
        old_factory = self.old_factory
        fields = self.fields

        def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = old_factory(*args, **kwargs)
            record.extra_fields = {**_context_fields(record), **fields}
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        logging.setLogRecordFactory(self.old_factory)
