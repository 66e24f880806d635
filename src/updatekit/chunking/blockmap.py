"""Block map building for differential updates."""

from __future__ import annotations

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator, List, Tuple

from updatekit.chunking.compression import get_compressor
from updatekit.chunking.splitter import READ_SIZE, RawChunk, split
from updatekit.config import DEFAULT_CHUNKER_CONFIG, ChunkerConfig, default_max_workers
from updatekit.errors import FileIOError, UpdateKitError
from updatekit.models import BlockMap, Chunk, CompressionFormat

LOGGER = logging.getLogger(__name__)

CHUNK_HASH_SIZE = 18


def chunk_hash(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=CHUNK_HASH_SIZE).digest()


def _batched(chunks: Iterable[RawChunk], size: int) -> Iterator[List[RawChunk]]:
    iterator = iter(chunks)
    while batch := list(islice(iterator, size)):
        yield batch


class BlockMapBuilder:
    """Streams a file through the splitter and records every chunk.

    Chunks are hashed and compressed on a thread pool; results are consumed
    in file order so the block map never depends on scheduling.
    """

    def __init__(
        self,
        config: ChunkerConfig = DEFAULT_CHUNKER_CONFIG,
        compression: CompressionFormat | str = CompressionFormat.GZIP,
        *,
        max_workers: int | None = None,
        read_size: int = READ_SIZE,
    ) -> None:
        self.config = config
        self.compression = (
            compression
            if isinstance(compression, CompressionFormat)
            else CompressionFormat.parse(compression)
        )
        self._compress = get_compressor(self.compression)
        self.max_workers = max_workers or default_max_workers()
        self.read_size = read_size

    def _process(self, data: bytes) -> Tuple[bytes, bytes]:
        return self._compress(data), chunk_hash(data)

    def build(self, file_path: Path, output_path: Path | None = None) -> Tuple[BlockMap, Path | None]:
        """Build the block map of ``file_path``.

        If ``output_path`` is given the compressed chunks are written there in
        order; otherwise only the manifest is produced.
        """
        file_path = Path(file_path)
        output_path = Path(output_path) if output_path is not None else None
        file_hash = hashlib.sha512()
        chunks: List[Chunk] = []
        file_size = 0

        try:
            with ExitStack() as stack:
                source = stack.enter_context(file_path.open("rb"))
                sink = None
                if output_path is not None:
                    output_path.parent.mkdir(parents=True, exist_ok=True)
                    sink = stack.enter_context(output_path.open("wb"))
                executor = stack.enter_context(ThreadPoolExecutor(max_workers=self.max_workers))

                batch_size = self.max_workers * 4
                for batch in _batched(split(source, self.config, read_size=self.read_size), batch_size):
                    for raw in batch:
                        file_hash.update(raw.data)
                    results = executor.map(self._process, [raw.data for raw in batch])
                    for raw, (compressed, digest) in zip(batch, results):
                        chunks.append(Chunk(raw.offset, raw.size, len(compressed), digest))
                        file_size += raw.size
                        if sink is not None:
                            sink.write(compressed)
        except UpdateKitError:
            raise
        except OSError as exc:
            raise FileIOError(f"cannot build block map for {file_path}: {exc}") from exc

        LOGGER.debug(
            "Block map for %s: %d bytes, %d chunks, compression %s",
            file_path,
            file_size,
            len(chunks),
            self.compression.value,
        )
        block_map = BlockMap(
            chunk_config=self.config,
            chunks=tuple(chunks),
            file_size=file_size,
            file_checksum=file_hash.digest(),
            compression=self.compression,
        )
        return block_map, output_path


def build_block_map(
    file_path: Path,
    config: ChunkerConfig = DEFAULT_CHUNKER_CONFIG,
    compression: CompressionFormat | str = CompressionFormat.GZIP,
    output_path: Path | None = None,
) -> Tuple[BlockMap, Path | None]:
    return BlockMapBuilder(config, compression).build(file_path, output_path)
