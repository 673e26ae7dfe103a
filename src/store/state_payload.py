"""Shared JSON serialization for system-state payloads.

This module centralizes SystemState JSON encoding and decoding.
It is reused by the state archive and by CLI download output.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import asdict
from datetime import datetime
from typing import Any, cast

from core.constants import REGISTER_FIELD_NAMES
from core.errors import StateStoreError
from core.types import (
    SUPPORTED_MACHINE_MODELS,
    MachineModel,
    MemoryRegion,
    Registers,
    StorageEntry,
    SystemState,
)


def state_to_payload(state: SystemState) -> dict[str, object]:
    """Serialize SystemState into JSON-safe payload.

    Args:
        state: Snapshot to encode.

    Returns:
        Dictionary payload with base64 region data.
    """
    return {
        "model": state.model,
        "registers": asdict(state.registers),
        "regions": [
            {
                "start": region.start,
                "length": region.length,
                "data": base64.b64encode(region.data).decode("ascii"),
            }
            for region in state.regions
        ],
    }


def state_from_payload(payload: dict[str, Any]) -> SystemState:
    """Deserialize JSON payload into SystemState.

    Args:
        payload: Serialized state payload.

    Returns:
        Parsed SystemState.

    Raises:
        StateStoreError: If payload fields are missing or malformed.
    """
    try:
        model = parse_machine_model(payload["model"])
        registers_payload = dict(payload.get("registers", {}))
        registers = Registers(
            **{
                name: int(registers_payload.get(name, 0))
                for name in REGISTER_FIELD_NAMES
            }
        )
        regions = tuple(_region_from_payload(item) for item in payload["regions"])
    except (KeyError, TypeError, ValueError, binascii.Error) as error:
        raise StateStoreError(
            f"Failed to decode stored state payload: {error}. "
            "Discard the snapshot and upload it again."
        ) from error
    return SystemState(model=model, registers=registers, regions=regions)


def entry_to_payload(entry: StorageEntry) -> dict[str, object]:
    """Serialize a storage entry with its token and timestamp."""
    return {
        "token": entry.token,
        "created_at": entry.created_at.isoformat(),
        "state": state_to_payload(entry.state),
    }


def entry_from_payload(payload: dict[str, Any]) -> StorageEntry:
    """Deserialize a storage entry payload.

    Raises:
        StateStoreError: If payload fields are missing or malformed.
    """
    try:
        token = int(payload["token"])
        created_at = datetime.fromisoformat(str(payload["created_at"]))
        state_payload = cast(dict[str, Any], payload["state"])
    except (KeyError, TypeError, ValueError) as error:
        raise StateStoreError(
            f"Failed to decode stored entry payload: {error}. "
            "Discard the snapshot and upload it again."
        ) from error
    return StorageEntry(token=token, state=state_from_payload(state_payload), created_at=created_at)


def _region_from_payload(payload: dict[str, Any]) -> MemoryRegion:
    return MemoryRegion(
        start=int(payload["start"]),
        length=int(payload["length"]),
        data=base64.b64decode(str(payload.get("data", "")), validate=True),
    )


def parse_machine_model(raw_model: object) -> MachineModel:
    """Return raw_model as a MachineModel or raise ValueError."""
    if raw_model in SUPPORTED_MACHINE_MODELS:
        return cast(MachineModel, raw_model)
    raise ValueError(f"unsupported machine model {raw_model!r}")
