"""Memory region validation.

This module rejects structurally invalid regions before they are stored.
Overlapping and adjacent regions are legal and pass through untouched.
"""

from __future__ import annotations

from typing import Sequence

from core.errors import InvalidRegionError
from core.types import MemoryRegion


def validate_regions(regions: Sequence[MemoryRegion]) -> tuple[MemoryRegion, ...]:
    """Validate an ordered region list for ingest.

    Args:
        regions: Regions in submission order.

    Returns:
        The same regions in the same order, with payloads as immutable bytes.

    Raises:
        InvalidRegionError: If any region has a negative start or length,
            or a payload whose size differs from its declared length.
    """
    validated: list[MemoryRegion] = []
    for index, region in enumerate(regions):
        validated.append(_validate_region(index, region))
    return tuple(validated)


def _validate_region(index: int, region: MemoryRegion) -> MemoryRegion:
    if not isinstance(region.start, int) or isinstance(region.start, bool):
        raise InvalidRegionError(
            f"Region #{index} start must be an integer, got {type(region.start).__name__}."
        )
    if not isinstance(region.length, int) or isinstance(region.length, bool):
        raise InvalidRegionError(
            f"Region #{index} length must be an integer, got {type(region.length).__name__}."
        )
    if not isinstance(region.data, (bytes, bytearray, memoryview)):
        raise InvalidRegionError(
            f"Region #{index} data must be bytes, got {type(region.data).__name__}."
        )
    if region.start < 0:
        raise InvalidRegionError(
            f"Region #{index} has negative start address {region.start}. "
            "Use addresses >= 0."
        )
    if region.length < 0:
        raise InvalidRegionError(
            f"Region #{index} has negative length {region.length}. Use lengths >= 0."
        )
    payload = bytes(region.data)
    data_length = len(payload)
    if data_length != region.length:
        raise InvalidRegionError(
            f"Region #{index} declares length {region.length} but carries "
            f"{data_length} data bytes. Make length match the payload size."
        )
    if type(region.data) is bytes:
        return region
    return MemoryRegion(start=region.start, length=region.length, data=payload)
