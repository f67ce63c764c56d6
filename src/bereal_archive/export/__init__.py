"""Export of captures as single files or zip bundles."""

from .compositor import create_merged_image, create_rounded_mask, inset_geometry
from .config import ExportConfig
from .exporter import (
    ExportArtifact,
    ExportMode,
    export_batch,
    export_captures,
    export_single,
    has_bts_video,
)

__all__ = [
    'create_merged_image',
    'create_rounded_mask',
    'inset_geometry',
    'ExportConfig',
    'ExportArtifact',
    'ExportMode',
    'export_batch',
    'export_captures',
    'export_single',
    'has_bts_video',
]
