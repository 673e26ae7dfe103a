"""Sparse address store for system-state snapshots.

This module owns the token table of immutable snapshots. It validates
and ingests uploads, reconstructs memory ranges, and projects stored
states with or without region payloads.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone

from core.errors import InvalidRegionError, UnknownTokenError
from core.logging_config import get_logger
from core.types import CoveredSpan, MemoryRegion, StateSummary, StorageEntry, SystemState
from ingest.region_validation import validate_regions
from store.address_space import compose_range, covered_spans
from store.state_archive import StateArchive
from store.token_allocator import TokenAllocator

_LOGGER = get_logger(__name__)


class StateStore:
    """Token-keyed store of immutable system-state snapshots.

    Entries are published to the token table only once complete, so
    readers never observe a partially ingested snapshot. Reads of
    published entries take no lock. When an archive is attached, entries
    are written durably before publication and tokens missing from memory
    are loaded from the archive on demand.

    Stores attached to archives on the same data root share one token
    space: each resolves tokens issued by the others, and none reissues a
    token another one discarded. Stores without an archive never see each
    other's tokens.
    """

    def __init__(
        self,
        archive: StateArchive | None = None,
        token_seed: int | None = None,
    ) -> None:
        """Create an empty store.

        Args:
            archive: Optional durable archive backing the token table.
            token_seed: Optional seed for reproducible token sequences.
        """
        self._archive = archive
        self._allocator = TokenAllocator(token_seed)
        self._entries: dict[int, StorageEntry] = {}
        self._lock = threading.Lock()

    def ingest(self, state: SystemState) -> int:
        """Validate and store one snapshot.

        Args:
            state: Snapshot to store; regions keep their submission order.

        Returns:
            Fresh positive token for the stored snapshot.

        Raises:
            InvalidRegionError: If any region is structurally invalid.
            StateStoreError: If the archive cannot persist the entry.
        """
        try:
            regions = validate_regions(state.regions)
        except InvalidRegionError as error:
            _LOGGER.warning("state_rejected", region_count=len(state.regions), reason=str(error))
            raise
        frozen_state = replace(state, regions=regions)
        with self._lock:
            token = self._allocator.allocate(self._is_taken)
            entry = StorageEntry(
                token=token,
                state=frozen_state,
                created_at=datetime.now(timezone.utc),
            )
            if self._archive is not None:
                self._archive.save(entry)
            self._entries[token] = entry
        _LOGGER.info(
            "state_uploaded",
            token=token,
            model=frozen_state.model,
            region_count=len(regions),
            byte_count=sum(region.length for region in regions),
        )
        return token

    def read_range(self, token: int, start: int, length: int) -> bytes:
        """Reconstruct ``length`` bytes starting at ``start``.

        Addresses not covered by any region read as zero; where regions
        overlap, the later-submitted region wins.

        Args:
            token: Snapshot token.
            start: First address of the window.
            length: Window size in bytes.

        Returns:
            Exactly ``length`` bytes.

        Raises:
            UnknownTokenError: If the token is not live in this store.
            InvalidRangeError: If length is negative.
        """
        entry = self._entry(token)
        window = compose_range(entry.state.regions, start, length)
        _LOGGER.debug("range_read", token=token, start=start, length=length)
        return window

    def download_state(self, token: int, exclude_memory_data: bool = False) -> SystemState:
        """Return a stored snapshot.

        Args:
            token: Snapshot token.
            exclude_memory_data: Drop region payloads, keeping start and
                length of every region in the original order.

        Returns:
            Stored snapshot or its metadata-only projection.

        Raises:
            UnknownTokenError: If the token is not live in this store.
        """
        state = self._entry(token).state
        if not exclude_memory_data:
            return state
        return replace(
            state,
            regions=tuple(
                MemoryRegion(start=region.start, length=region.length)
                for region in state.regions
            ),
        )

    def covered_spans(self, token: int) -> tuple[CoveredSpan, ...]:
        """Return the merged populated address spans of a snapshot.

        Raises:
            UnknownTokenError: If the token is not live in this store.
        """
        return covered_spans(self._entry(token).state.regions)

    def discard(self, token: int) -> None:
        """Remove a snapshot; its token is never reissued on this token space.

        Raises:
            UnknownTokenError: If the token is not live in this store.
        """
        with self._lock:
            removed = self._entries.pop(token, None) is not None
            if self._archive is not None:
                removed = self._archive.delete(token) or removed
        if not removed:
            raise _unknown_token(token)
        _LOGGER.info("state_discarded", token=token)

    def list_states(self) -> tuple[StateSummary, ...]:
        """List live snapshots ordered by creation time."""
        summaries: dict[int, StateSummary] = {}
        if self._archive is not None:
            for summary in self._archive.list_summaries():
                summaries[summary.token] = summary
        for entry in list(self._entries.values()):
            summaries[entry.token] = StateSummary(
                token=entry.token,
                model=entry.state.model,
                region_count=len(entry.state.regions),
                created_at=entry.created_at,
            )
        return tuple(sorted(summaries.values(), key=lambda item: item.created_at))

    def _entry(self, token: int) -> StorageEntry:
        entry = self._entries.get(token)
        if entry is not None:
            return entry
        if self._archive is None:
            raise _unknown_token(token)
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                entry = self._archive.load(token)
                if entry is None:
                    raise _unknown_token(token)
                self._allocator.reserve(token)
                self._entries[token] = entry
                _LOGGER.info("state_loaded_from_archive", token=token)
        return entry

    def _is_taken(self, token: int) -> bool:
        if token in self._entries:
            return True
        return self._archive is not None and self._archive.is_reserved(token)


def _unknown_token(token: int) -> UnknownTokenError:
    return UnknownTokenError(
        f"Unknown state token {token}. Upload the state again to obtain a valid token."
    )
