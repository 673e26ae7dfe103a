"""State description file parsing.

This module loads YAML (or JSON) files describing a system state for
CLI uploads. It checks the file schema only; region validity is left to
the region validator so every upload path reports the same errors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence, cast

import yaml

from core.constants import DEFAULT_MACHINE_MODEL, REGISTER_FIELD_NAMES
from core.errors import StateFileError
from core.types import SUPPORTED_MACHINE_MODELS, MachineModel, MemoryRegion, Registers, SystemState


def load_state_file(state_path: str) -> SystemState:
    """Load and parse a state description file.

    Args:
        state_path: Path to a YAML or JSON state file.

    Returns:
        Parsed system state, regions in file order.

    Raises:
        StateFileError: If the file is missing, unparsable, or malformed.
    """
    payload = _load_yaml_payload(state_path)
    return parse_state_mapping(_expect_mapping(payload, "state file root"))


def parse_state_mapping(root_mapping: Mapping[str, object]) -> SystemState:
    """Build a SystemState from an already-loaded mapping.

    Raises:
        StateFileError: If fields are missing or have the wrong shape.
    """
    _validate_keys(root_mapping, {"model", "registers", "regions"}, "state file root")
    model = _parse_model(root_mapping.get("model", DEFAULT_MACHINE_MODEL))
    registers = _parse_registers(root_mapping.get("registers"))
    regions = _parse_regions(root_mapping.get("regions"))
    return SystemState(model=model, registers=registers, regions=regions)


def _load_yaml_payload(state_path: str) -> object:
    state_file = Path(state_path).expanduser().resolve()
    if not state_file.exists():
        raise StateFileError(
            f"State file does not exist at {state_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(state_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise StateFileError(
            f"Failed to read state file at {state_file}: {error}. Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise StateFileError(
            f"Failed to parse YAML state file at {state_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise StateFileError(f"State file at {state_file} is empty. Define at least 'regions'.")
    return payload


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise StateFileError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise StateFileError(f"Invalid {context}: expected object mapping, got {type(value).__name__}.")


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise StateFileError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _expect_int(value: object, context: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise StateFileError(f"Invalid {context}: expected integer, got {type(value).__name__}.")


def _parse_model(raw_model: object) -> MachineModel:
    if raw_model in SUPPORTED_MACHINE_MODELS:
        return cast(MachineModel, raw_model)
    supported_rows = ", ".join(SUPPORTED_MACHINE_MODELS)
    raise StateFileError(f"Unsupported machine model {raw_model!r}. Use one of: {supported_rows}.")


def _parse_registers(raw_registers: object) -> Registers:
    if raw_registers is None:
        return Registers()
    registers_mapping = _expect_mapping(raw_registers, "registers")
    _validate_keys(registers_mapping, set(REGISTER_FIELD_NAMES), "registers")
    values = {
        name: _expect_int(value, f"register '{name}'")
        for name, value in registers_mapping.items()
    }
    return Registers(**values)


def _parse_regions(raw_regions: object) -> tuple[MemoryRegion, ...]:
    if raw_regions is None:
        return ()
    region_rows = _expect_sequence(raw_regions, "regions")
    return tuple(_parse_region(row, index) for index, row in enumerate(region_rows))


def _parse_region(raw_region: object, region_index: int) -> MemoryRegion:
    context = f"region #{region_index}"
    region_mapping = _expect_mapping(raw_region, context)
    _validate_keys(region_mapping, {"start", "length", "data"}, context)
    if "start" not in region_mapping:
        raise StateFileError(f"Invalid {context}: missing required field 'start'.")
    start = _expect_int(region_mapping["start"], f"{context} start")
    data = _parse_region_data(region_mapping.get("data", []), context)
    raw_length = region_mapping.get("length")
    length = len(data) if raw_length is None else _expect_int(raw_length, f"{context} length")
    return MemoryRegion(start=start, length=length, data=data)


def _parse_region_data(raw_data: object, context: str) -> bytes:
    if isinstance(raw_data, str):
        try:
            return bytes.fromhex(raw_data)
        except ValueError as error:
            raise StateFileError(
                f"Invalid {context} data: expected hex string, got {raw_data[:16]!r}..."
            ) from error
    byte_rows = _expect_sequence(raw_data, f"{context} data")
    values = [_expect_int(value, f"{context} data byte") for value in byte_rows]
    out_of_range = [value for value in values if not 0 <= value <= 255]
    if out_of_range:
        raise StateFileError(
            f"Invalid {context} data: byte values must be in [0, 255], got {out_of_range[0]}."
        )
    return bytes(values)


def _validate_keys(mapping: Mapping[str, object], allowed_keys: set[str], context: str) -> None:
    unknown_keys = sorted(set(mapping) - allowed_keys)
    if unknown_keys:
        raise StateFileError(f"Invalid {context}: unknown fields {', '.join(unknown_keys)}.")
