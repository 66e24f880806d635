"""Content-defined chunking.

A polynomial rolling hash is kept over the last ``window`` bytes of the
stream. A cut is placed after a byte once the top bits of the hash are all
zero and the chunk has reached the minimum size, or unconditionally when it
reaches the maximum size. Because the hash only looks at the window, an edit
in one place of a file does not move boundaries elsewhere.

Hashes are computed a block at a time with numpy; only the cut selection
walks positions one by one, and only at trigger candidates.
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from typing import BinaryIO, Iterator

import numpy as np

from updatekit.config import DEFAULT_CHUNKER_CONFIG, MIB, ChunkerConfig

READ_SIZE = MIB
# FNV-1 64-bit prime
_MULTIPLIER = 0x100000001B3
_MODULUS = 1 << 64


def _byte_table() -> np.ndarray:
    values = [
        int.from_bytes(
            hashlib.blake2b(bytes([value]), digest_size=8, person=b"updatekit-cdc").digest(),
            "little",
        )
        for value in range(256)
    ]
    return np.array(values, dtype=np.uint64)


BYTE_TABLE = _byte_table()


@dataclass(slots=True)
class RawChunk:
    """Chunk boundary emitted by :func:`split`, with the bytes it covers."""

    offset: int
    size: int
    rolling_hash: int
    data: bytes


def trigger_bits(config: ChunkerConfig) -> int:
    """Number of leading zero bits a hash needs to become a cut candidate."""
    return round(math.log2(max(config.average_size - config.min_size, 1)))


def trigger_mask(config: ChunkerConfig) -> int:
    bits = trigger_bits(config)
    return ((1 << bits) - 1) << (64 - bits)


class RollingWindow:
    """Sliding-window hash that carries its history across blocks."""

    def __init__(self, window: int) -> None:
        self.window = window
        self._powers = np.array(
            [pow(_MULTIPLIER, distance, _MODULUS) for distance in range(window)],
            dtype=np.uint64,
        )
        self._history = np.zeros(window - 1, dtype=np.uint64)

    def update(self, block: bytes) -> np.ndarray:
        """Return the hash of the window ending at every byte of ``block``."""
        values = BYTE_TABLE[np.frombuffer(block, dtype=np.uint8)]
        lag = self.window - 1
        extended = np.concatenate((self._history, values))
        count = len(values)
        hashes = np.zeros(count, dtype=np.uint64)
        with np.errstate(over="ignore"):
            for distance in range(self.window):
                start = lag - distance
                hashes += extended[start : start + count] * self._powers[distance]
        if lag:
            self._history = extended[-lag:].copy()
        return hashes


def split(
    stream: BinaryIO,
    config: ChunkerConfig = DEFAULT_CHUNKER_CONFIG,
    *,
    read_size: int = READ_SIZE,
) -> Iterator[RawChunk]:
    """Lazily split ``stream`` into content-defined chunks.

    Single pass: the stream is consumed, so re-open it to split again.
    """
    window = RollingWindow(config.window)
    mask = np.uint64(trigger_mask(config))
    pending = bytearray()
    chunk_start = 0
    position = 0
    last_hash = 0

    for block in iter(lambda: stream.read(read_size), b""):
        hashes = window.update(block)
        block_start = position
        pending += block
        position += len(block)
        last_hash = int(hashes[-1])
        candidates = np.flatnonzero((hashes & mask) == 0).tolist()
        index = 0

        while True:
            while (
                index < len(candidates)
                and block_start + candidates[index] + 1 - chunk_start < config.min_size
            ):
                index += 1

            forced_end = chunk_start + config.max_size
            if index < len(candidates) and block_start + candidates[index] + 1 <= forced_end:
                end = block_start + candidates[index] + 1
                rolling_hash = int(hashes[candidates[index]])
                index += 1
            elif forced_end <= position:
                end = forced_end
                rolling_hash = int(hashes[end - 1 - block_start])
            else:
                break

            size = end - chunk_start
            yield RawChunk(chunk_start, size, rolling_hash, bytes(pending[:size]))
            del pending[:size]
            chunk_start = end

    if pending:
        yield RawChunk(chunk_start, len(pending), last_hash, bytes(pending))
