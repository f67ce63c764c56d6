"""Logging section of the bereal-archive configuration."""

from pathlib import Path
from typing import Literal
from pydantic import BaseModel, Field, ConfigDict, field_validator


class LoggingConfig(BaseModel):
    """Logging configuration shared by the ingest and export commands."""

    model_config = ConfigDict(extra='forbid')

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level"
    )
    format: Literal["simple", "detailed", "json"] = Field(
        default="simple",
        description="Console log format; file logs are always JSON"
    )
    file: str | None = Field(default=None, description="Optional log file path")
    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        description="Rotate the log file after this many megabytes"
    )
    backup_count: int = Field(
        default=5,
        ge=0,
        description="Number of rotated log files to keep"
    )

    @field_validator('level', mode='before')
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator('format', mode='before')
    @classmethod
    def normalize_format(cls, v: str) -> str:
        if isinstance(v, str):
            return v.lower()
        return v

    @property
    def file_path(self) -> Path | None:
        """Log file as a Path, or None when file logging is off."""
        return Path(self.file) if self.file else None
