"""Tests for file utility functions."""

from __future__ import annotations

import base64
import hashlib
import io
import os
from pathlib import Path

import pytest

from updatekit.errors import FileIOError
from updatekit.utils.files import (
    HashingWriter,
    copy_dir_or_file,
    decode_checksum,
    ensure_parent_dir,
    remove_quietly,
)


class TestHashingWriter:
    """Test HashingWriter decorator."""

    def test_forwards_and_hashes(self) -> None:
        """Should write through and digest the same bytes."""
        sink = io.BytesIO()
        writer = HashingWriter(sink, hashlib.sha512())

        assert writer.write(b"hello ") == 6
        writer.write(b"world")
        writer.flush()

        assert sink.getvalue() == b"hello world"
        assert writer.digest.digest() == hashlib.sha512(b"hello world").digest()


class TestDecodeChecksum:
    """Test decode_checksum function."""

    def test_base64(self) -> None:
        """Should decode base64 digests."""
        digest = hashlib.sha512(b"abc").digest()
        assert decode_checksum(base64.b64encode(digest).decode()) == digest

    def test_hex(self) -> None:
        """Should decode 128-character hex digests."""
        digest = hashlib.sha512(b"abc").digest()
        assert decode_checksum(digest.hex()) == digest
        assert decode_checksum(digest.hex().upper()) == digest

    def test_invalid(self) -> None:
        """Should reject strings in neither encoding."""
        with pytest.raises(ValueError):
            decode_checksum("%%%")

    @pytest.mark.parametrize("value", ["ab" * 32, base64.b64encode(b"\x00" * 32).decode()])
    def test_wrong_length(self, value: str) -> None:
        """Should reject digests that are not 64 bytes long."""
        with pytest.raises(ValueError, match="64"):
            decode_checksum(value)


class TestEnsureParentDir:
    """Test ensure_parent_dir helper."""

    def test_creates_directory(self, tmp_path: Path) -> None:
        """Creates parent directory if it doesn't exist."""
        target = tmp_path / "a" / "b" / "file.bin"
        ensure_parent_dir(target)
        assert target.parent.is_dir()

    def test_parent_is_file(self, tmp_path: Path) -> None:
        """Raises FileIOError when a file blocks the path."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with pytest.raises(FileIOError):
            ensure_parent_dir(blocker / "file.bin")


class TestRemoveQuietly:
    """Test remove_quietly helper."""

    def test_removes_file(self, tmp_path: Path) -> None:
        """Deletes an existing file."""
        target = tmp_path / "out.part1"
        target.write_bytes(b"x")
        assert remove_quietly(target) is True
        assert not target.exists()

    def test_missing_file_is_logged(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        """Logs instead of raising when deletion fails."""
        assert remove_quietly(tmp_path / "missing") is False
        assert "cannot delete part file" in caplog.text


class TestCopyDirOrFile:
    """Test copy_dir_or_file function."""

    def test_copy_file(self, tmp_path: Path) -> None:
        """Should copy a single file, creating parents."""
        source = tmp_path / "source.txt"
        source.write_text("content")
        target = tmp_path / "out" / "target.txt"

        assert copy_dir_or_file(source, target) == 1
        assert target.read_text() == "content"

    def test_copy_tree(self, tmp_path: Path) -> None:
        """Should copy nested directories."""
        source = tmp_path / "src"
        (source / "sub").mkdir(parents=True)
        (source / "a.txt").write_text("a")
        (source / "sub" / "b.txt").write_text("b")

        assert copy_dir_or_file(source, tmp_path / "dst") == 2
        assert (tmp_path / "dst" / "a.txt").read_text() == "a"
        assert (tmp_path / "dst" / "sub" / "b.txt").read_text() == "b"

    def test_hard_links(self, tmp_path: Path) -> None:
        """Should link instead of copying when asked."""
        source = tmp_path / "source.txt"
        source.write_text("content")
        target = tmp_path / "linked.txt"

        copy_dir_or_file(source, target, use_hard_links=True)
        assert os.path.samefile(source, target)

    def test_missing_source(self, tmp_path: Path) -> None:
        """Should raise FileIOError for a missing source."""
        with pytest.raises(FileIOError):
            copy_dir_or_file(tmp_path / "missing", tmp_path / "target")
