"""Splitting a resource into ordered, contiguous byte ranges."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from updatekit.models import ActualLocation, Part

LOGGER = logging.getLogger(__name__)


def part_file_name(output_file: Path, index: int) -> Path:
    """Part 0 is written straight to the output file, others to siblings."""
    if index == 0:
        return output_file
    return output_file.with_name(f"{output_file.name}.part{index}")


def compute_parts(
    output_file: Path,
    content_length: int,
    min_part_size: int,
    max_part_count: int,
) -> List[Part]:
    """Partition ``[0, content_length)`` into at most ``max_part_count`` parts.

    An unknown length (negative) yields a single part ending at ``-1``.
    Parts have equal width except the last one, which absorbs the remainder.
    """
    if content_length < 0:
        LOGGER.warning("Invalid content length %d, will be downloaded as one part", content_length)
        return [Part(name=output_file, start=0, end=-1)]

    if content_length <= min_part_size:
        part_count = 1
    else:
        part_count = max(1, min(content_length // min_part_size, max_part_count))

    part_size = content_length // part_count
    parts: List[Part] = []
    start = 0
    for index in range(part_count):
        end = content_length if index == part_count - 1 else start + part_size
        parts.append(Part(name=part_file_name(output_file, index), start=start, end=end))
        start = end
    return parts


def assign_parts(location: ActualLocation, min_part_size: int, max_part_count: int) -> None:
    if not location.accepts_ranges:
        max_part_count = 1
    location.parts = compute_parts(
        location.output_file, location.content_length, min_part_size, max_part_count
    )


def drop_skipped_parts(location: ActualLocation) -> None:
    """Remove parts flagged ``skip`` from the merge set."""
    location.parts = [part for part in location.parts if not part.skip]
