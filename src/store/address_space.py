"""Sparse address space reconstruction.

This module rebuilds byte windows from a snapshot's region list.
Regions are applied in submission order so later regions win on overlap,
and addresses covered by no region read back as zero.
"""

from __future__ import annotations

from typing import Sequence

from core.errors import InvalidRangeError
from core.types import CoveredSpan, MemoryRegion


def compose_range(regions: Sequence[MemoryRegion], start: int, length: int) -> bytes:
    """Reconstruct the bytes of ``[start, start + length)``.

    Args:
        regions: Regions in submission order.
        start: First address of the window; may precede address 0.
        length: Window size in bytes.

    Returns:
        Exactly ``length`` bytes.

    Raises:
        InvalidRangeError: If length is negative.
    """
    if length < 0:
        raise InvalidRangeError(
            f"Range length must be >= 0, got {length}. Request a non-negative length."
        )
    window = bytearray(length)
    window_end = start + length
    for region in regions:
        overlap_start = max(start, region.start)
        overlap_end = min(window_end, region.start + len(region.data))
        if overlap_start >= overlap_end:
            continue
        source_offset = overlap_start - region.start
        target_offset = overlap_start - start
        span = overlap_end - overlap_start
        window[target_offset : target_offset + span] = region.data[
            source_offset : source_offset + span
        ]
    return bytes(window)


def covered_spans(regions: Sequence[MemoryRegion]) -> tuple[CoveredSpan, ...]:
    """Coalesce regions into sorted, merged populated spans.

    Overlapping and adjacent regions merge into one span; empty regions
    contribute nothing.

    Args:
        regions: Regions in any order.

    Returns:
        Disjoint spans sorted by start address.
    """
    intervals = sorted(
        (region.start, region.end)
        for region in regions
        if region.length > 0
    )
    merged: list[CoveredSpan] = []
    for span_start, span_end in intervals:
        if merged and span_start <= merged[-1].end:
            if span_end > merged[-1].end:
                merged[-1] = CoveredSpan(start=merged[-1].start, end=span_end)
            continue
        merged.append(CoveredSpan(start=span_start, end=span_end))
    return tuple(merged)
