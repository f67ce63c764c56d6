"""Tests for input file validation."""

import pytest
from bereal_archive.common.errors import (
    InputReadError,
    InputTooLargeError,
    InvalidFileTypeError,
    MissingInputError,
)
from bereal_archive.ingest.inputs import InputFile, load_input

MB = 1024 * 1024


class TestLoadInput:
    """Tests for load_input."""

    def test_missing(self):
        """Test that None is rejected."""
        with pytest.raises(MissingInputError):
            load_input(None, "zip", MB)

    def test_suffix_accepted(self):
        """Test that the expected suffix passes."""
        source = InputFile("export.ZIP", b"data")
        assert load_input(source, "zip", MB) is source

    def test_content_type_accepted(self):
        """Test that a matching content type passes without a suffix."""
        assert load_input(InputFile("blob", b"x", "application/zip"), "zip", MB).data == b"x"
        assert load_input(InputFile("blob", b"x", "application/x-gzip"), "gz", MB).data == b"x"
        assert load_input(InputFile("blob", b"x", "application/gzip"), "gz", MB).data == b"x"

    def test_wrong_type(self):
        """Test that neither suffix nor content type matching is rejected."""
        with pytest.raises(InvalidFileTypeError):
            load_input(InputFile("export.tar", b"x", "application/x-tar"), "zip", MB)
        with pytest.raises(InvalidFileTypeError):
            load_input(InputFile("events.zip", b"x"), "gz", MB)

    def test_too_large_in_memory(self):
        """Test the size limit for in-memory inputs."""
        with pytest.raises(InputTooLargeError) as exc_info:
            load_input(InputFile("export.zip", b"x" * (MB + 1)), "zip", MB)
        assert exc_info.value.context["limit_mb"] == 1

    def test_path_input(self, tmp_path):
        """Test that paths are read from disk."""
        path = tmp_path / "events.gz"
        path.write_bytes(b"abc")
        loaded = load_input(path, "gz", MB)
        assert loaded.name == "events.gz"
        assert loaded.data == b"abc"

    def test_path_too_large_checked_before_read(self, tmp_path):
        """Test that oversized files are rejected from their size alone."""
        path = tmp_path / "export.zip"
        with open(path, "wb") as f:
            f.truncate(MB + 1)
        with pytest.raises(InputTooLargeError):
            load_input(str(path), "zip", MB)

    def test_unreadable_path(self, tmp_path):
        """Test that a missing file becomes InputReadError."""
        with pytest.raises(InputReadError):
            load_input(tmp_path / "missing.zip", "zip", MB)
