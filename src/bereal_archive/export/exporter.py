"""Single-file and bundled export of captures.

One capture in a mode other than ``both`` exports as a single file. Anything
else exports as a zip with one folder per capture, named by its capture time.
"""

import io
import logging
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from ..common.errors import CompositingError, MissingMediaError
from ..common.mime_detector import is_video_mime_type
from ..ingest.media_map import MediaBlob, MediaMap
from ..models import Capture
from .compositor import convert_to_jpeg, create_merged_image
from .config import ExportConfig

logger = logging.getLogger(__name__)

JPEG_MIME_TYPE = "image/jpeg"
VIDEO_MIME_TYPE = "video/mp4"
ZIP_MIME_TYPE = "application/zip"


class ExportMode(str, Enum):
    """What to export for each capture."""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    BOTH = "both"
    MERGED = "merged"


@dataclass(frozen=True)
class ExportArtifact:
    """An exported file held in memory.

    Attributes:
        filename: Suggested file name
        data: File content
        mime_type: MIME type of the content
    """
    filename: str
    data: bytes
    mime_type: str

    def write_to(self, directory: Path) -> Path:
        """Write the artifact into ``directory`` (created if missing)."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / self.filename
        target.write_bytes(self.data)
        logger.info(f"Wrote export: {{'path': {str(target)!r}, 'size': {len(self.data)}}}")
        return target


def has_bts_video(capture: Capture, media_map: MediaMap) -> bool:
    """True when the capture has a behind-the-scenes video that was extracted."""
    bts = capture.bts_media
    return bts is not None and bts.is_video and media_map.resolve(bts) is not None


def _resolve_pair(capture: Capture, media_map: MediaMap) -> Tuple[MediaBlob, MediaBlob]:
    primary = media_map.resolve(capture.primary)
    secondary = media_map.resolve(capture.secondary)
    if primary is None or secondary is None:
        raise MissingMediaError(
            "Missing required media for download",
            capture_id=capture.id,
            primary=primary is not None,
            secondary=secondary is not None,
        )
    return primary, secondary


def _still_bytes(blob: MediaBlob, config: ExportConfig) -> bytes:
    if config.convert_stills_to_jpeg and blob.mime_type != JPEG_MIME_TYPE:
        return convert_to_jpeg(blob.read(), config.jpeg_quality)
    return blob.read()


def export_single(
    capture: Capture,
    media_map: MediaMap,
    mode: ExportMode,
    name: str,
    config: Optional[ExportConfig] = None,
) -> ExportArtifact:
    """Export one capture as one file.

    Args:
        capture: Post or memory to export
        media_map: Extracted media
        mode: primary, secondary or merged
        name: Base file name

    Returns:
        ``<name>-primary.jpg``, ``<name>-secondary.jpg``, ``<name>.mp4`` or
        ``<name>-merged.jpg``

    Raises:
        MissingMediaError: If primary or secondary media was not extracted
        CompositingError: If an image cannot be decoded
        ValueError: If mode is ``both``
    """
    config = config or ExportConfig()
    mode = ExportMode(mode)
    primary, secondary = _resolve_pair(capture, media_map)

    if mode is ExportMode.PRIMARY:
        return ExportArtifact(f"{name}-primary.jpg", _still_bytes(primary, config), JPEG_MIME_TYPE)

    if mode is ExportMode.SECONDARY:
        return ExportArtifact(f"{name}-secondary.jpg", _still_bytes(secondary, config), JPEG_MIME_TYPE)

    if mode is ExportMode.MERGED:
        if has_bts_video(capture, media_map):
            video = media_map.resolve(capture.bts_media)
            mime_type = video.mime_type if is_video_mime_type(video.mime_type) else VIDEO_MIME_TYPE
            return ExportArtifact(f"{name}.mp4", video.read(), mime_type)
        merged = create_merged_image(primary.read(), secondary.read(), config.jpeg_quality)
        return ExportArtifact(f"{name}-merged.jpg", merged, JPEG_MIME_TYPE)

    raise ValueError(f"Single export does not support mode {mode.value!r}")


def _folder_name(capture: Capture, config: ExportConfig, used: Dict[str, int]) -> str:
    base = capture.taken_at.strftime(config.date_format) if capture.taken_at else capture.id
    count = used.get(base, 0) + 1
    used[base] = count
    return base if count == 1 else f"{base}_{count}"


def _capture_files(
    capture: Capture,
    media_map: MediaMap,
    mode: ExportMode,
    config: ExportConfig,
) -> Dict[str, bytes]:
    primary, secondary = _resolve_pair(capture, media_map)
    files: Dict[str, bytes] = {}

    bts_video = has_bts_video(capture, media_map)
    if bts_video:
        files["video.mp4"] = media_map.resolve(capture.bts_media).read()

    if mode in (ExportMode.PRIMARY, ExportMode.BOTH):
        files["primary.jpg"] = _still_bytes(primary, config)
    if mode in (ExportMode.SECONDARY, ExportMode.BOTH):
        files["secondary.jpg"] = _still_bytes(secondary, config)
    if mode is ExportMode.MERGED and not bts_video:
        files["merged.jpg"] = create_merged_image(primary.read(), secondary.read(), config.jpeg_quality)

    return files


def export_batch(
    captures: Sequence[Capture],
    media_map: MediaMap,
    mode: ExportMode,
    name: str,
    config: Optional[ExportConfig] = None,
) -> ExportArtifact:
    """Export captures as ``<name>.zip`` with one folder per capture.

    Captures whose primary or secondary media is missing, or whose images
    cannot be decoded, are skipped.

    Args:
        captures: Posts and/or memories to export
        media_map: Extracted media
        mode: Any ExportMode
        name: Base name of the zip

    Returns:
        ExportArtifact holding the zip
    """
    config = config or ExportConfig()
    mode = ExportMode(mode)
    used_folders: Dict[str, int] = {}
    exported = 0
    skipped = 0

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as bundle:
        for capture in captures:
            try:
                files = _capture_files(capture, media_map, mode, config)
            except (MissingMediaError, CompositingError) as e:
                skipped += 1
                logger.warning(f"Skipped capture in batch export: {{'id': {capture.id!r}, 'error': {str(e)!r}}}")
                continue

            folder = _folder_name(capture, config, used_folders)
            for filename, data in files.items():
                bundle.writestr(f"{folder}/{filename}", data)
            exported += 1

    logger.info(
        f"Batch export complete: {{'name': {name!r}, 'mode': {mode.value!r}, "
        f"'exported': {exported}, 'skipped': {skipped}}}"
    )
    return ExportArtifact(f"{name}.zip", buffer.getvalue(), ZIP_MIME_TYPE)


def export_captures(
    captures: Sequence[Capture],
    media_map: MediaMap,
    mode: ExportMode,
    name: str,
    config: Optional[ExportConfig] = None,
) -> ExportArtifact:
    """Export one capture as a single file, or several as a zip.

    ``both`` always produces a zip, even for a single capture.
    """
    mode = ExportMode(mode)
    if len(captures) == 1 and mode is not ExportMode.BOTH:
        return export_single(captures[0], media_map, mode, name, config)
    return export_batch(captures, media_map, mode, name, config)
