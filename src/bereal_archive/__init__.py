"""Ingestion and export of BeReal data exports."""

from .config import BeRealArchiveConfig
from .ingest import IngestionResult, IngestionSession, ingest_export
from .export import ExportArtifact, ExportMode, export_captures
from .models import BeRealData

__version__ = "0.1.0"

__all__ = [
    'BeRealArchiveConfig',
    'IngestionResult',
    'IngestionSession',
    'ingest_export',
    'ExportArtifact',
    'ExportMode',
    'export_captures',
    'BeRealData',
]
