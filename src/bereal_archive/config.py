"""Root configuration schema for bereal-archive."""

from pydantic import BaseModel, Field, ConfigDict

from .common import LoggingConfig
from .export.config import ExportConfig
from .ingest.config import IngestConfig


class BeRealArchiveConfig(BaseModel):
    """Root configuration for bereal-archive."""

    model_config = ConfigDict(extra='forbid')

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
