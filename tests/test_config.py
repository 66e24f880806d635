"""Tests for configuration defaults."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from updatekit.config import (
    DEFAULT_CHUNKER_CONFIG,
    MIB,
    MIN_PART_SIZE,
    ChunkerConfig,
    DownloadConfig,
    default_max_workers,
)


class TestChunkerConfig:
    """Test ChunkerConfig dataclass."""

    def test_default_config(self) -> None:
        """Should create config with documented defaults."""
        config = ChunkerConfig()

        assert config.min_size == 8 * 1024
        assert config.average_size == 16 * 1024
        assert config.max_size == 32 * 1024
        assert config.window == 64
        assert config == DEFAULT_CHUNKER_CONFIG

    def test_custom_config(self) -> None:
        """Should accept custom sizes in order."""
        config = ChunkerConfig(min_size=100, average_size=100, max_size=100, window=8)

        assert config.to_dict() == {"minSize": 100, "averageSize": 100, "maxSize": 100}

    @pytest.mark.parametrize(
        "sizes",
        [(0, 10, 20), (20, 10, 30), (10, 30, 20), (-1, 10, 20)],
    )
    def test_invalid_sizes(self, sizes) -> None:
        """Should reject sizes out of order or non-positive."""
        min_size, average_size, max_size = sizes
        with pytest.raises(ValueError):
            ChunkerConfig(min_size=min_size, average_size=average_size, max_size=max_size)

    def test_invalid_window(self) -> None:
        """Should reject a non-positive window."""
        with pytest.raises(ValueError):
            ChunkerConfig(window=0)


class TestDownloadConfig:
    """Test DownloadConfig dataclass."""

    def test_default_config(self) -> None:
        """Should fill in the worker count and 5 MiB parts."""
        config = DownloadConfig()

        assert config.min_part_size == MIN_PART_SIZE == 5 * MIB
        assert config.max_workers == default_max_workers()
        assert config.max_redirects == 10

    def test_invalid_workers(self) -> None:
        """Should reject a worker count below one."""
        with pytest.raises(ValueError):
            DownloadConfig(max_workers=0)


class TestDefaultMaxWorkers:
    """Test default worker derivation."""

    @pytest.mark.parametrize("cpus,expected", [(1, 2), (2, 4), (4, 8), (16, 8), (None, 2)])
    def test_twice_cpus_capped_at_eight(self, cpus, expected: int) -> None:
        """Should be min(2 x CPUs, 8)."""
        with patch("updatekit.config.os.cpu_count", return_value=cpus):
            assert default_max_workers() == expected
