"""Python SDK for system-state operations.

This module exposes the upload, download, and range-download operations
backed by an archive-backed state store.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from core.config import RetroStateConfig
from core.errors import StateStoreError
from core.types import CoveredSpan, StateSummary, SystemState
from store.state_archive import StateArchive
from store.state_store import StateStore


class RetroStateClient:
    """Primary SDK entry point for system-state workflows."""

    def __init__(
        self,
        config: RetroStateConfig | None = None,
        store: StateStore | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            store: Optional store; defaults to one archived under data_root.
        """
        self._config = config or RetroStateConfig.from_env()
        self._store = store or StateStore(
            archive=StateArchive(self._config.data_root),
            token_seed=self._config.token_seed,
        )

    @property
    def config(self) -> RetroStateConfig:
        """Runtime configuration used by this client."""
        return self._config

    def upload_state(self, state: SystemState) -> int:
        """Upload a new system state.

        Args:
            state: Snapshot to store.

        Returns:
            Unique token that can be used to fetch this state later.

        Raises:
            InvalidRegionError: If any memory region is invalid.
            StateStoreError: If persistence fails.
        """
        return self._store.ingest(state)

    def download_state(self, token: int, exclude_memory_data: bool = False) -> SystemState:
        """Fetch the system state associated with a token.

        Args:
            token: Token returned by upload_state.
            exclude_memory_data: Omit region payloads; use download_range
                to fetch any sized slices instead.

        Returns:
            Stored system state.

        Raises:
            UnknownTokenError: If the token is unknown.
        """
        return self._store.download_state(token, exclude_memory_data)

    def download_range(self, token: int, start: int, length: int) -> bytes:
        """Download a slice of a system state's memory.

        Args:
            token: Token of the state whose memory should be read.
            start: Start address (inclusive).
            length: Number of bytes to fetch.

        Returns:
            Exactly ``length`` bytes; unmapped addresses read as zero.

        Raises:
            UnknownTokenError: If the token is unknown.
            StateStoreError: If the store returned a short or long buffer.
        """
        window = self._store.read_range(token, start, length)
        if len(window) != length:
            raise StateStoreError(
                f"Length received ({len(window)}) does not match "
                f"requested length ({length}) for token {token}."
            )
        return window

    def covered_spans(self, token: int) -> tuple[CoveredSpan, ...]:
        """Return merged populated memory spans of a stored state."""
        return self._store.covered_spans(token)

    def list_states(self) -> tuple[StateSummary, ...]:
        """List stored states ordered by creation time."""
        return self._store.list_states()

    def discard_state(self, token: int) -> None:
        """Remove a stored state.

        Raises:
            UnknownTokenError: If the token is unknown.
        """
        self._store.discard(token)

    def with_data_root(self, data_root: str) -> "RetroStateClient":
        """Clone the client with a different local data root.

        Args:
            data_root: New data root path.

        Returns:
            New SDK client instance with its own store.
        """
        resolved_root = Path(data_root).expanduser().resolve()
        updated_config = replace(self._config, data_root=resolved_root)
        return RetroStateClient(updated_config)
