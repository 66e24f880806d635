"""Configuration defaults for chunking and downloading."""

from __future__ import annotations

import os
from dataclasses import dataclass

KIB = 1024
MIB = 1024 * KIB

MAX_REDIRECTS = 10
MIN_PART_SIZE = 5 * MIB
MAX_PART_COUNT = 8
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_13_3) AppleWebKit/604.5.6 "
    "(KHTML, like Gecko) Version/11.0.3 Safari/604.5.6"
)


def default_max_workers() -> int:
    """Worker count used for part downloads and chunk compression."""
    return min((os.cpu_count() or 1) * 2, MAX_PART_COUNT)


@dataclass(slots=True, frozen=True)
class ChunkerConfig:
    """Content-defined chunking parameters, all sizes in bytes."""

    min_size: int = 8 * KIB
    average_size: int = 16 * KIB
    max_size: int = 32 * KIB
    window: int = 64

    def __post_init__(self) -> None:
        if self.window <= 0:
            raise ValueError(f"window must be positive, got {self.window}")
        if not 0 < self.min_size <= self.average_size <= self.max_size:
            raise ValueError(
                "chunk sizes must satisfy 0 < min <= average <= max, got "
                f"min={self.min_size} average={self.average_size} max={self.max_size}"
            )

    def to_dict(self) -> dict[str, int]:
        return {
            "minSize": self.min_size,
            "averageSize": self.average_size,
            "maxSize": self.max_size,
        }


DEFAULT_CHUNKER_CONFIG = ChunkerConfig()


@dataclass(slots=True)
class DownloadConfig:
    min_part_size: int = MIN_PART_SIZE
    max_workers: int | None = None
    max_redirects: int = MAX_REDIRECTS
    user_agent: str = USER_AGENT
    timeout: float = 60.0
    buffer_size: int = 64 * KIB

    def __post_init__(self) -> None:
        if self.max_workers is None:
            self.max_workers = default_max_workers()
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.min_part_size <= 0:
            raise ValueError(f"min_part_size must be positive, got {self.min_part_size}")
