"""Utility helpers for working with files."""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO

from updatekit.errors import FileIOError

LOGGER = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 32 * 1024
SHA512_SIZE = 64


class HashingWriter:
    """Byte sink decorator that feeds every write into a running digest."""

    def __init__(self, sink: BinaryIO, digest: "hashlib._Hash") -> None:
        self.sink = sink
        self.digest = digest

    def write(self, data: bytes) -> int:
        written = self.sink.write(data)
        self.digest.update(data)
        return written

    def flush(self) -> None:
        self.sink.flush()


def ensure_parent_dir(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileIOError(f"cannot create directory {path.parent}: {exc}") from exc


def decode_checksum(value: str) -> bytes:
    """Decode an expected SHA-512 given either as hex or as base64."""
    value = value.strip()
    if len(value) == 128:
        try:
            return bytes.fromhex(value)
        except ValueError:
            pass
    try:
        digest = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError(f"checksum is neither hex nor base64: {value}") from None
    if len(digest) != SHA512_SIZE:
        raise ValueError(f"checksum is {len(digest)} bytes, a SHA-512 digest is {SHA512_SIZE}: {value}")
    return digest


def remove_quietly(path: Path) -> bool:
    """Delete ``path``; failures are logged, not raised."""
    try:
        path.unlink()
    except OSError as exc:
        LOGGER.error("cannot delete part file %s: %s", path, exc)
        return False
    return True


def copy_dir_or_file(source: Path, target: Path, *, use_hard_links: bool = False) -> int:
    """Copy a file or a directory tree, returning the number of files copied.

    With ``use_hard_links`` files are linked where the filesystem allows it
    and copied otherwise.
    """
    if not source.exists():
        raise FileIOError(f"source does not exist: {source}")

    if source.is_dir():
        files = sorted(item for item in source.rglob("*") if item.is_file() or item.is_symlink())
        target.mkdir(parents=True, exist_ok=True)
        for item in files:
            _copy_file(item, target / item.relative_to(source), use_hard_links)
        return len(files)

    _copy_file(source, target, use_hard_links)
    return 1


def _copy_file(source: Path, target: Path, use_hard_links: bool) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        if source.is_symlink():
            if target.is_symlink() or target.exists():
                target.unlink()
            os.symlink(os.readlink(source), target)
            return
        if use_hard_links:
            try:
                if target.exists():
                    target.unlink()
                os.link(source, target)
                return
            except OSError as exc:
                LOGGER.debug("cannot hard link %s, copying instead: %s", source, exc)
        shutil.copy2(source, target)
    except OSError as exc:
        raise FileIOError(f"cannot copy {source} to {target}: {exc}") from exc
