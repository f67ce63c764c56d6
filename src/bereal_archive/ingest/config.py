"""Configuration models for ingestion."""

import os
from typing import List

from pydantic import BaseModel, Field, ConfigDict, field_validator


class IngestConfig(BaseModel):
    """Ingestion limits and media extraction tuning."""

    model_config = ConfigDict(extra='forbid')

    max_input_size_mb: int = Field(
        default=500,
        ge=1,
        description="Reject input files larger than this before parsing"
    )
    media_batch_size: int = Field(
        default=100,
        ge=1,
        description="Number of media entries decoded concurrently per batch"
    )
    progress_interval: int = Field(
        default=5,
        ge=1,
        description="Report media progress every N completed entries"
    )
    max_workers: int = Field(
        default_factory=lambda: min(32, (os.cpu_count() or 2) * 2),
        ge=1,
        description="Thread pool size for JSON parsing and media decoding (default: 2 x CPU cores, max 32)"
    )
    batch_pause_seconds: float = Field(
        default=0.001,
        ge=0.0,
        description="Pause between media batches; cancellation is checked here"
    )
    media_prefixes: List[str] = Field(
        default_factory=lambda: ["Photos/", "conversations/", "profile-pictures/"],
        description="Archive folders whose files are extracted into the media map"
    )

    @field_validator('media_prefixes')
    @classmethod
    def ensure_trailing_slash(cls, v: List[str]) -> List[str]:
        """Prefixes name folders, so 'Photos' becomes 'Photos/'."""
        return [p if p.endswith('/') else f"{p}/" for p in v]

    @property
    def max_input_size_bytes(self) -> int:
        return self.max_input_size_mb * 1024 * 1024
