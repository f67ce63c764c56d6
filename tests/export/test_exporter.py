"""Tests for single-item and batch export."""

import io
import zipfile
from datetime import datetime, timezone

import pytest
from PIL import Image
from bereal_archive.common.errors import MissingMediaError
from bereal_archive.export.config import ExportConfig
from bereal_archive.export.exporter import (
    ExportArtifact,
    ExportMode,
    export_batch,
    export_captures,
    export_single,
    has_bts_video,
)
from bereal_archive.ingest.config import IngestConfig
from bereal_archive.ingest.inputs import InputFile
from bereal_archive.ingest.media_map import MediaBlob
from bereal_archive.ingest.pipeline import ingest_export
from bereal_archive.models import Media, Post


@pytest.fixture
def ingested(export_zip, event_log):
    result = ingest_export(
        InputFile("export.zip", export_zip),
        InputFile("events.gz", event_log),
        config=IngestConfig(max_workers=2, batch_pause_seconds=0),
    )
    yield result
    result.media.release_all()


def _post(ingested, post_id):
    return next(p for p in ingested.data.posts if p.id == post_id)


def _names(artifact):
    with zipfile.ZipFile(io.BytesIO(artifact.data)) as zf:
        return sorted(zf.namelist())


class TestHasBtsVideo:
    """Tests for has_bts_video."""

    def test_detects_extracted_video(self, ingested):
        """Test that only extracted bts videos count."""
        assert has_bts_video(_post(ingested, "post-b"), ingested.media)
        assert not has_bts_video(_post(ingested, "post-a"), ingested.media)

    def test_missing_from_map(self, ingested):
        """Test that a bts video absent from the map does not count."""
        post = Post(
            id="x",
            primary=None,
            secondary=None,
            taken_at=None,
            bts_media=Media(path="Photos/post/missing.mp4", media_type="video"),
        )
        assert not has_bts_video(post, ingested.media)


class TestExportSingle:
    """Tests for export_single."""

    def test_primary_and_secondary(self, ingested):
        """Test single still exports."""
        post = _post(ingested, "post-a")
        primary = export_single(post, ingested.media, ExportMode.PRIMARY, "shot")
        secondary = export_single(post, ingested.media, "secondary", "shot")

        assert primary.filename == "shot-primary.jpg"
        assert secondary.filename == "shot-secondary.jpg"
        assert primary.mime_type == "image/jpeg"
        assert primary.data == ingested.media["Photos/post/a-primary.jpg"].read()

    def test_merged_still(self, ingested):
        """Test that merging without bts yields a still of the primary's size."""
        artifact = export_single(_post(ingested, "post-a"), ingested.media, ExportMode.MERGED, "shot")
        assert artifact.filename == "shot-merged.jpg"
        assert Image.open(io.BytesIO(artifact.data)).size == (400, 600)

    def test_merged_with_bts_is_video(self, ingested):
        """Test that merging with a bts video yields exactly the video."""
        artifact = export_single(_post(ingested, "post-b"), ingested.media, ExportMode.MERGED, "shot")
        assert artifact.filename == "shot.mp4"
        assert artifact.data == ingested.media["Photos/post/b-bts.mp4"].read()
        assert artifact.data[4:8] == b"ftyp"
        assert artifact.mime_type.startswith("video/")

    def test_memory_uses_front_and_back(self, ingested):
        """Test that memories export through the same accessors."""
        memory = ingested.data.memories[0]
        artifact = export_single(memory, ingested.media, ExportMode.PRIMARY, "mem")
        assert artifact.data == ingested.media["Photos/post/a-primary.jpg"].read()

    def test_missing_media(self, ingested):
        """Test that missing media is fatal in single mode."""
        post = Post(id="x", primary=Media(path="Photos/post/a-primary.jpg"), secondary=None, taken_at=None)
        with pytest.raises(MissingMediaError):
            export_single(post, ingested.media, ExportMode.PRIMARY, "x")

    def test_both_not_single(self, ingested):
        """Test that both is rejected in single mode."""
        with pytest.raises(ValueError):
            export_single(_post(ingested, "post-a"), ingested.media, ExportMode.BOTH, "x")

    def test_webp_converted_to_jpeg(self, ingested):
        """Test that non-JPEG stills are re-encoded unless disabled."""
        buffer = io.BytesIO()
        Image.new('RGB', (40, 60), "green").save(buffer, 'WEBP')
        ingested.media.add(MediaBlob("Photos/post/w.webp", buffer.getvalue(), "image/webp"))
        ingested.media.add(MediaBlob("Photos/post/w2.webp", buffer.getvalue(), "image/webp"))
        post = Post(
            id="w",
            primary=Media(path="Photos/post/w.webp"),
            secondary=Media(path="Photos/post/w2.webp"),
            taken_at=None,
        )

        converted = export_single(post, ingested.media, ExportMode.PRIMARY, "w")
        assert Image.open(io.BytesIO(converted.data)).format == "JPEG"

        raw = export_single(post, ingested.media, ExportMode.PRIMARY, "w", ExportConfig(convert_stills_to_jpeg=False))
        assert raw.data == buffer.getvalue()


class TestExportBatch:
    """Tests for export_batch."""

    def test_both_mode_layout(self, ingested):
        """Test folder names and file sets for both mode."""
        artifact = export_batch(ingested.data.posts, ingested.media, ExportMode.BOTH, "bundle")
        assert artifact.filename == "bundle.zip"
        assert artifact.mime_type == "application/zip"
        assert _names(artifact) == [
            "2023-05-01-12-00-03/primary.jpg",
            "2023-05-01-12-00-03/secondary.jpg",
            "2023-05-02-08-30-00/primary.jpg",
            "2023-05-02-08-30-00/secondary.jpg",
            "2023-05-02-08-30-00/video.mp4",
        ]

    def test_merged_mode_layout(self, ingested):
        """Test that merged.jpg is only written without a bts video."""
        artifact = export_batch(ingested.data.posts, ingested.media, ExportMode.MERGED, "bundle")
        assert _names(artifact) == [
            "2023-05-01-12-00-03/merged.jpg",
            "2023-05-02-08-30-00/video.mp4",
        ]

    def test_skips_captures_missing_media(self, ingested):
        """Test that N valid captures plus one missing secondary give N folders."""
        broken = Post(
            id="broken",
            primary=Media(path="Photos/post/a-primary.jpg"),
            secondary=Media(path="Photos/post/not-extracted.jpg"),
            taken_at=datetime(2023, 6, 1, tzinfo=timezone.utc),
        )
        captures = [*ingested.data.posts, broken]
        artifact = export_batch(captures, ingested.media, ExportMode.PRIMARY, "bundle")

        folders = {name.split("/")[0] for name in _names(artifact)}
        assert len(folders) == len(ingested.data.posts)
        assert "2023-06-01-00-00-00" not in folders

    def test_duplicate_timestamps_get_distinct_folders(self, ingested):
        """Test that captures taken in the same second do not collide."""
        post = _post(ingested, "post-a")
        artifact = export_batch([post, post], ingested.media, ExportMode.PRIMARY, "dup")
        assert _names(artifact) == [
            "2023-05-01-12-00-03/primary.jpg",
            "2023-05-01-12-00-03_2/primary.jpg",
        ]

    def test_missing_timestamp_uses_id(self, ingested):
        """Test the folder name fallback."""
        post = Post(
            id="no-time",
            primary=Media(path="Photos/post/a-primary.jpg"),
            secondary=Media(path="Photos/post/a-secondary.jpg"),
            taken_at=None,
        )
        assert _names(export_batch([post], ingested.media, ExportMode.PRIMARY, "x")) == ["no-time/primary.jpg"]


class TestExportCaptures:
    """Tests for export_captures dispatch and writing."""

    def test_single_item_dispatch(self, ingested):
        """Test that one capture outside both mode is a single file."""
        artifact = export_captures([_post(ingested, "post-a")], ingested.media, ExportMode.PRIMARY, "one")
        assert artifact.filename == "one-primary.jpg"

    def test_both_always_zips(self, ingested):
        """Test that both mode zips even a single capture."""
        artifact = export_captures([_post(ingested, "post-a")], ingested.media, ExportMode.BOTH, "one")
        assert artifact.filename == "one.zip"

    def test_many_items_zip(self, ingested):
        """Test that several captures zip."""
        artifact = export_captures(ingested.data.captures(), ingested.media, "merged", "all")
        assert artifact.filename == "all.zip"

    def test_write_to(self, tmp_path):
        """Test that artifacts are written into a created directory."""
        path = ExportArtifact("a.jpg", b"data", "image/jpeg").write_to(tmp_path / "out")
        assert path == tmp_path / "out" / "a.jpg"
        assert path.read_bytes() == b"data"
