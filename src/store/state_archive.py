"""Filesystem-backed state archive.

This module persists storage entries under a data root so snapshots
survive process restarts. Each entry is one JSON document, and an
ordered catalog indexes the live tokens and remembers retired ones.
"""

from __future__ import annotations

import json
import os
import shutil
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, cast

from core.constants import CATALOG_FILE_NAME, STATE_FILE_NAME, STATES_DIR_NAME
from core.errors import StateStoreError
from core.types import StateSummary, StorageEntry
from store.state_payload import entry_from_payload, entry_to_payload, parse_machine_model


class StateArchive:
    """Durable token-keyed snapshot archive."""

    def __init__(self, data_root: Path) -> None:
        """Initialize archive directories under a data root.

        Args:
            data_root: Local root directory for archived states.
        """
        self._states_root = data_root.expanduser().resolve() / STATES_DIR_NAME
        self._states_root.mkdir(parents=True, exist_ok=True)
        self._catalog_path = self._states_root / CATALOG_FILE_NAME
        self._catalog_lock = threading.Lock()

    def save(self, entry: StorageEntry) -> None:
        """Persist one entry and register it in the catalog.

        Args:
            entry: Entry to persist.

        Raises:
            StateStoreError: If the entry cannot be written.
        """
        entry_dir = self._states_root / str(entry.token)
        try:
            entry_dir.mkdir(parents=True, exist_ok=False)
        except FileExistsError as error:
            raise StateStoreError(
                f"Archive already holds token {entry.token} at {entry_dir}. "
                "Allocate a fresh token before saving."
            ) from error
        except OSError as error:
            raise StateStoreError(
                f"Failed to create archive directory {entry_dir}: {error}."
            ) from error
        try:
            _write_json_atomic(entry_dir / STATE_FILE_NAME, entry_to_payload(entry))
            with self._catalog_lock:
                catalog = self._read_catalog()
                states = cast(list[dict[str, Any]], catalog["states"])
                states.append(_summary_row(entry))
                _write_json_atomic(self._catalog_path, catalog)
        except StateStoreError:
            # An entry without a catalog row must not stay loadable.
            shutil.rmtree(entry_dir, ignore_errors=True)
            raise

    def load(self, token: int) -> StorageEntry | None:
        """Load one archived entry.

        Args:
            token: Entry token.

        Returns:
            The entry, or None when the token is not archived.

        Raises:
            StateStoreError: If the archived document is unreadable.
        """
        state_path = self._states_root / str(token) / STATE_FILE_NAME
        if not state_path.exists():
            return None
        payload = _read_json(state_path)
        if not isinstance(payload, dict):
            raise StateStoreError(
                f"Invalid state document at {state_path}: expected JSON object."
            )
        entry = entry_from_payload(payload)
        if entry.token != token:
            raise StateStoreError(
                f"State document at {state_path} holds token {entry.token}, "
                f"expected {token}. Repair or discard the archive entry."
            )
        return entry

    def is_reserved(self, token: int) -> bool:
        """Return whether a token is archived or was retired by a discard.

        Raises:
            StateStoreError: If the catalog is unreadable.
        """
        if (self._states_root / str(token) / STATE_FILE_NAME).exists():
            return True
        with self._catalog_lock:
            catalog = self._read_catalog()
        return token in catalog["retired"]

    def delete(self, token: int) -> bool:
        """Remove one archived entry and retire its token.

        Retired tokens stay listed in the catalog so that no store on
        this data root issues them again.

        Args:
            token: Entry token.

        Returns:
            True when an entry was removed.

        Raises:
            StateStoreError: If the entry cannot be removed.
        """
        entry_dir = self._states_root / str(token)
        with self._catalog_lock:
            catalog = self._read_catalog()
            states = cast(list[dict[str, Any]], catalog["states"])
            remaining = [row for row in states if int(row["token"]) != token]
            found = entry_dir.exists() or len(remaining) != len(states)
            if found:
                catalog["states"] = remaining
                retired = cast(list[int], catalog["retired"])
                if token not in retired:
                    retired.append(token)
                _write_json_atomic(self._catalog_path, catalog)
        try:
            shutil.rmtree(entry_dir)
        except FileNotFoundError:
            pass
        except OSError as error:
            raise StateStoreError(
                f"Failed to remove archived state {entry_dir}: {error}."
            ) from error
        return found

    def list_summaries(self) -> tuple[StateSummary, ...]:
        """List archived entries in catalog order.

        Raises:
            StateStoreError: If the catalog is malformed.
        """
        with self._catalog_lock:
            catalog = self._read_catalog()
        rows = cast(list[dict[str, Any]], catalog["states"])
        try:
            return tuple(
                StateSummary(
                    token=int(row["token"]),
                    model=parse_machine_model(row["model"]),
                    region_count=int(row["region_count"]),
                    created_at=datetime.fromisoformat(str(row["created_at"])),
                )
                for row in rows
            )
        except (KeyError, TypeError, ValueError) as error:
            raise StateStoreError(
                f"Malformed archive catalog row at {self._catalog_path}: {error}. "
                "Recreate the catalog from the state documents."
            ) from error

    def _read_catalog(self) -> dict[str, Any]:
        if not self._catalog_path.exists():
            return {"states": [], "retired": []}
        payload = _read_json(self._catalog_path)
        if not isinstance(payload, dict) or not isinstance(payload.get("states"), list):
            raise StateStoreError(
                f"Invalid archive catalog at {self._catalog_path}: expected states list. "
                "Recreate the catalog from the state documents."
            )
        payload.setdefault("retired", [])
        if not isinstance(payload["retired"], list):
            raise StateStoreError(
                f"Invalid archive catalog at {self._catalog_path}: expected retired token list."
            )
        return payload


def _summary_row(entry: StorageEntry) -> dict[str, object]:
    return {
        "token": entry.token,
        "model": entry.state.model,
        "region_count": len(entry.state.regions),
        "created_at": entry.created_at.isoformat(),
    }


def _read_json(payload_path: Path) -> object:
    """Read one JSON document with traceable errors."""
    try:
        return json.loads(payload_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as error:
        raise StateStoreError(
            f"Failed to parse archive document at {payload_path}: {error.msg}."
        ) from error
    except OSError as error:
        raise StateStoreError(f"Failed to read archive document {payload_path}: {error}.") from error


def _write_json_atomic(payload_path: Path, payload: object) -> None:
    """Write a JSON document through a temporary file and rename it into place."""
    temp_path = payload_path.with_name(f".{payload_path.name}.tmp")
    try:
        temp_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        os.replace(temp_path, payload_path)
    except OSError as error:
        raise StateStoreError(f"Failed to write archive document {payload_path}: {error}.") from error
