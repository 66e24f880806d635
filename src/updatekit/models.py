"""Core updatekit data models."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Tuple

from updatekit.config import ChunkerConfig
from updatekit.errors import CompressionError

BLOCK_MAP_VERSION = 2


class CompressionFormat(str, Enum):
    NONE = "none"
    GZIP = "gzip"
    DEFLATE = "deflate"

    @classmethod
    def parse(cls, name: str) -> "CompressionFormat":
        try:
            return cls(name.lower())
        except ValueError:
            raise CompressionError(f"unknown compression format {name}") from None


def encode_digest(digest: bytes) -> str:
    return base64.standard_b64encode(digest).decode("ascii")


@dataclass(slots=True, frozen=True)
class Chunk:
    """One content-aligned segment of a file, as recorded in a block map."""

    offset: int
    size: int
    compressed_size: int
    hash: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "offset": self.offset,
            "size": self.size,
            "compressedSize": self.compressed_size,
            "hash": encode_digest(self.hash),
        }


@dataclass(slots=True, frozen=True)
class BlockMap:
    """Manifest describing the chunks of a single file.

    Serialization is deterministic: the same content and chunk configuration
    always produce the same JSON text.
    """

    chunk_config: ChunkerConfig
    chunks: Tuple[Chunk, ...]
    file_size: int
    file_checksum: bytes
    compression: CompressionFormat
    version: int = BLOCK_MAP_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "fileSize": self.file_size,
            "fileChecksum": encode_digest(self.file_checksum),
            "chunkConfig": self.chunk_config.to_dict(),
            "compression": self.compression.value,
            "chunks": [chunk.to_dict() for chunk in self.chunks],
        }

    def to_json(self, *, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=True)


@dataclass(slots=True)
class Part:
    """One byte range of a download, written to its own file.

    ``end`` is exclusive; ``-1`` means the range runs to the end of a
    resource of unknown length.
    """

    name: Path
    start: int
    end: int
    skip: bool = False
    failed: bool = False

    @property
    def size(self) -> int:
        if self.end < 0:
            return -1
        return self.end - self.start

    def range_header(self) -> str | None:
        if self.end < 0:
            return None
        return f"bytes={self.start}-{self.end - 1}"


@dataclass(slots=True)
class ActualLocation:
    """Metadata of a terminal 2xx response. Never describes a redirect."""

    url: str
    content_length: int
    accepts_ranges: bool
    output_file: Path
    parts: List[Part] = field(default_factory=list)
