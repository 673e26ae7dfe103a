"""Shared typed models.

This module defines immutable data models used by validation, store,
SDK, and CLI layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from core.constants import DEFAULT_MACHINE_MODEL

MachineModel = Literal["unknown", "model_i", "model_iii", "model_4", "model_4p"]
SUPPORTED_MACHINE_MODELS: tuple[MachineModel, ...] = (
    "unknown",
    "model_i",
    "model_iii",
    "model_4",
    "model_4p",
)


@dataclass(frozen=True)
class MemoryRegion:
    """One contiguous run of bytes in a machine address space.

    Attributes:
        start: First address covered by the region.
        length: Number of bytes covered by the region.
        data: Region payload; empty for metadata-only projections.
    """

    start: int
    length: int
    data: bytes = b""

    @property
    def end(self) -> int:
        """Exclusive end address of the region."""
        return self.start + self.length


@dataclass(frozen=True)
class Registers:
    """Z80 register file captured with a snapshot.

    Values are carried verbatim and never interpreted by the store.
    """

    ix: int = 0
    iy: int = 0
    pc: int = 0
    sp: int = 0
    af: int = 0
    bc: int = 0
    de: int = 0
    hl: int = 0
    af_prime: int = 0
    bc_prime: int = 0
    de_prime: int = 0
    hl_prime: int = 0
    i: int = 0
    r_1: int = 0
    r_2: int = 0


@dataclass(frozen=True)
class SystemState:
    """One machine snapshot.

    Attributes:
        model: Machine variant the snapshot was taken on.
        registers: CPU register file.
        regions: Memory regions in submission order; later regions win
            on overlapping addresses.
    """

    model: MachineModel = DEFAULT_MACHINE_MODEL
    registers: Registers = field(default_factory=Registers)
    regions: tuple[MemoryRegion, ...] = ()


@dataclass(frozen=True)
class StorageEntry:
    """Immutable stored snapshot keyed by token.

    Attributes:
        token: Positive 63-bit handle issued at ingest.
        state: Validated snapshot payload.
        created_at: UTC ingest timestamp.
    """

    token: int
    state: SystemState
    created_at: datetime


@dataclass(frozen=True)
class StateSummary:
    """Listing row for one stored snapshot."""

    token: int
    model: MachineModel
    region_count: int
    created_at: datetime


@dataclass(frozen=True)
class CoveredSpan:
    """Half-open address span populated by at least one region."""

    start: int
    end: int

    @property
    def length(self) -> int:
        """Number of addresses in the span."""
        return self.end - self.start
