"""Public SDK surface for RetroState.

This module provides a stable import path for library users.
It re-exports the primary client, the store, and typed models.
"""

from __future__ import annotations

from core.config import RetroStateConfig
from core.errors import (
    InvalidRangeError,
    InvalidRegionError,
    RetroStateError,
    StateStoreError,
    UnknownTokenError,
)
from core.types import (
    CoveredSpan,
    MemoryRegion,
    Registers,
    StateSummary,
    SystemState,
)
from ingest.state_file import load_state_file
from store.state_archive import StateArchive
from store.state_sdk import RetroStateClient
from store.state_store import StateStore

__all__ = [
    "CoveredSpan",
    "InvalidRangeError",
    "InvalidRegionError",
    "MemoryRegion",
    "Registers",
    "RetroStateClient",
    "RetroStateConfig",
    "RetroStateError",
    "StateArchive",
    "StateStore",
    "StateStoreError",
    "StateSummary",
    "SystemState",
    "UnknownTokenError",
    "load_state_file",
]
