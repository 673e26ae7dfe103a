"""Verification check implementations for RetroState."""

from __future__ import annotations

import random
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal

from core.constants import (
    VERIFY_CONCURRENT_WORKERS,
    VERIFY_FULL_REGION_SIZE,
    VERIFY_QUICK_REGION_SIZE,
    VERIFY_REGION_COUNT,
)
from core.errors import InvalidRegionError, StateVerificationError, UnknownTokenError
from core.types import MemoryRegion, Registers, SystemState
from ingest.state_file import load_state_file
from store.state_sdk import RetroStateClient

VerificationMode = Literal["quick", "full"]


@dataclass
class VerificationRuntime:
    """Scratch client plus the running tallies checks report against."""

    client: RetroStateClient
    data_root: Path
    rng: random.Random
    region_size: int
    state_file_path: Path
    uploaded_tokens: list[int] = field(default_factory=list)
    bytes_compared: int = 0


@dataclass(frozen=True)
class VerificationCheck:
    """One named check; ``run`` returns a detail line or raises."""

    check_id: str
    title: str
    run: Callable[[VerificationRuntime], str]


_RANGE_FIXTURE_REGIONS = (
    MemoryRegion(start=1000, length=4, data=bytes([42, 43, 44, 45])),
    MemoryRegion(start=1100, length=8, data=bytes([1, 2, 3, 4, 5, 6, 7, 8])),
    MemoryRegion(start=1108, length=6, data=bytes([11, 22, 33, 44, 55, 66])),
    MemoryRegion(start=1120, length=5, data=bytes([101, 102, 103, 104, 105])),
)
_RANGE_EXPECTATIONS: tuple[tuple[str, int, int, bytes], ...] = (
    ("exact region", 1000, 4, bytes([42, 43, 44, 45])),
    ("second connected region", 1108, 6, bytes([11, 22, 33, 44, 55, 66])),
    (
        "two connected regions",
        1100,
        14,
        bytes([1, 2, 3, 4, 5, 6, 7, 8, 11, 22, 33, 44, 55, 66]),
    ),
    ("padding on both sides", 998, 8, bytes([0, 0, 42, 43, 44, 45, 0, 0])),
    ("padding at the end", 1002, 4, bytes([44, 45, 0, 0])),
    (
        "straddling a gap",
        1111,
        12,
        bytes([44, 55, 66, 0, 0, 0, 0, 0, 0, 101, 102, 103]),
    ),
    ("inside one region", 1122, 2, bytes([103, 104])),
)


def build_runtime(
    client: RetroStateClient,
    mode: VerificationMode,
) -> VerificationRuntime:
    """Build runtime state used by verification checks."""
    data_root = Path(tempfile.mkdtemp(prefix="retrostate-verify-")).resolve()
    region_size = VERIFY_FULL_REGION_SIZE if mode == "full" else VERIFY_QUICK_REGION_SIZE
    return VerificationRuntime(
        client=client.with_data_root(str(data_root)),
        data_root=data_root,
        rng=random.Random(client.config.random_seed),
        region_size=region_size,
        state_file_path=_write_runtime_state_file(data_root),
    )


def build_checks(mode: VerificationMode) -> tuple[VerificationCheck, ...]:
    """Build ordered check list for one verification mode."""
    checks = [
        VerificationCheck("V001", "Upload + Download State", check_upload_download),
        VerificationCheck("V002", "Reject Bad Memory Region", check_reject_bad_region),
        VerificationCheck("V003", "Metadata-Only Download", check_exclude_memory_data),
        VerificationCheck("V004", "Memory Range Reconstruction", check_memory_ranges),
        VerificationCheck("V005", "Unknown Token", check_unknown_token),
        VerificationCheck("V006", "State File Upload", check_state_file_upload),
    ]
    if mode == "full":
        checks.extend(
            (
                VerificationCheck("V007", "Concurrent Uploads + Reads", check_concurrent_access),
                VerificationCheck("V008", "Archive Reload", check_archive_reload),
            )
        )
    return tuple(checks)


def build_random_state(rng: random.Random, region_size: int) -> SystemState:
    """Build a snapshot with random, possibly overlapping, regions."""
    regions = []
    for _ in range(VERIFY_REGION_COUNT):
        start = rng.randrange(0, 32000)
        data = bytes(rng.randrange(0, 128) for _ in range(region_size))
        regions.append(MemoryRegion(start=start, length=region_size, data=data))
    registers = Registers(
        ix=9,
        iy=7,
        pc=5,
        sp=3,
        af=1,
        bc=2,
        de=4,
        hl=6,
        af_prime=100,
        bc_prime=80,
        de_prime=42,
        hl_prime=23,
        i=11,
        r_1=22,
        r_2=200,
    )
    return SystemState(model="model_iii", registers=registers, regions=tuple(regions))


def check_upload_download(runtime: VerificationRuntime) -> str:
    """Verify a stored state downloads unchanged."""
    state = build_random_state(runtime.rng, runtime.region_size)
    token = _upload(runtime, state)
    downloaded = runtime.client.download_state(token)
    if downloaded != state:
        raise StateVerificationError("Downloaded state does not match uploaded state.")
    runtime.bytes_compared += _payload_size(state)
    return f"token={token} region_count={len(state.regions)}"


def check_reject_bad_region(runtime: VerificationRuntime) -> str:
    """Verify a negative region start is rejected without storing anything."""
    state = build_random_state(runtime.rng, runtime.region_size)
    first_region = state.regions[0]
    bad_region = MemoryRegion(start=-10, length=first_region.length, data=first_region.data)
    bad_state = SystemState(
        model=state.model,
        registers=state.registers,
        regions=state.regions + (bad_region,),
    )
    state_count = len(runtime.client.list_states())
    try:
        runtime.client.upload_state(bad_state)
    except InvalidRegionError as error:
        if len(runtime.client.list_states()) != state_count:
            raise StateVerificationError("Rejected upload still created a stored state.")
        return f"rejected={error}"
    raise StateVerificationError("Upload with a negative region start was accepted.")


def check_exclude_memory_data(runtime: VerificationRuntime) -> str:
    """Verify metadata-only downloads keep region layout without payloads."""
    state = build_random_state(runtime.rng, runtime.region_size)
    token = _upload(runtime, state)
    downloaded = runtime.client.download_state(token, exclude_memory_data=True)
    if len(downloaded.regions) != len(state.regions):
        raise StateVerificationError(
            "Downloaded state should have the same number of memory regions."
        )
    layout = [(region.start, region.length) for region in state.regions]
    if [(region.start, region.length) for region in downloaded.regions] != layout:
        raise StateVerificationError("Metadata-only download changed region start or length.")
    if any(region.data for region in downloaded.regions):
        raise StateVerificationError("At least one memory region has data.")
    return f"token={token} region_count={len(downloaded.regions)}"


def check_memory_ranges(runtime: VerificationRuntime) -> str:
    """Verify range reconstruction across padding, gaps, and adjacency."""
    token = _upload(runtime, SystemState(model="model_iii", regions=_RANGE_FIXTURE_REGIONS))
    for index, (label, start, length, expected) in enumerate(_RANGE_EXPECTATIONS, start=1):
        window = runtime.client.download_range(token, start, length)
        runtime.bytes_compared += length
        if window != expected:
            raise StateVerificationError(
                f"Memory range check #{index} ({label}) failed: "
                f"expected {list(expected)}, got {list(window)}."
            )
    return f"token={token} ranges_checked={len(_RANGE_EXPECTATIONS)}"


def check_unknown_token(runtime: VerificationRuntime) -> str:
    """Verify reads against a never-issued token fail."""
    live_tokens = {summary.token for summary in runtime.client.list_states()}
    unknown_token = 1
    while unknown_token in live_tokens:
        unknown_token += 1
    try:
        runtime.client.download_range(unknown_token, 0, 16)
    except UnknownTokenError:
        return f"unknown_token={unknown_token}"
    raise StateVerificationError(f"Range read for unissued token {unknown_token} succeeded.")


def check_state_file_upload(runtime: VerificationRuntime) -> str:
    """Verify the YAML state-file path end to end."""
    state = load_state_file(str(runtime.state_file_path))
    token = _upload(runtime, state)
    window = runtime.client.download_range(token, 0x3C00, 4)
    runtime.bytes_compared += len(window)
    if window != b"HI\x00\x00":
        raise StateVerificationError(f"State file range read returned {window!r}.")
    return f"token={token} state_file={runtime.state_file_path}"


def check_concurrent_access(runtime: VerificationRuntime) -> str:
    """Verify concurrent uploads receive distinct tokens and isolated data."""
    states = [
        SystemState(
            model="model_4",
            regions=(MemoryRegion(start=index * 16, length=16, data=bytes([index + 1]) * 16),),
        )
        for index in range(VERIFY_CONCURRENT_WORKERS * 4)
    ]
    with ThreadPoolExecutor(max_workers=VERIFY_CONCURRENT_WORKERS) as executor:
        tokens = list(executor.map(runtime.client.upload_state, states))
        windows = list(
            executor.map(
                lambda pair: runtime.client.download_range(pair[1], pair[0] * 16, 16),
                enumerate(tokens),
            )
        )
    if len(set(tokens)) != len(tokens):
        raise StateVerificationError("Concurrent uploads produced duplicate tokens.")
    for index, window in enumerate(windows):
        if window != bytes([index + 1]) * 16:
            raise StateVerificationError(f"Concurrent read #{index} returned foreign data.")
    runtime.bytes_compared += sum(len(window) for window in windows)
    runtime.uploaded_tokens.extend(tokens)
    return f"uploads={len(tokens)} workers={VERIFY_CONCURRENT_WORKERS}"


def check_archive_reload(runtime: VerificationRuntime) -> str:
    """Verify a fresh client on the same data root reads archived states."""
    if not runtime.uploaded_tokens:
        raise StateVerificationError("No uploaded states available; cannot verify reload.")
    reloaded_client = runtime.client.with_data_root(str(runtime.data_root))
    for token in runtime.uploaded_tokens:
        original = runtime.client.download_state(token)
        if reloaded_client.download_state(token) != original:
            raise StateVerificationError(f"Archived state {token} changed after reload.")
        runtime.bytes_compared += _payload_size(original)
    return f"reloaded={len(runtime.uploaded_tokens)}"


def _upload(runtime: VerificationRuntime, state: SystemState) -> int:
    token = runtime.client.upload_state(state)
    if token <= 0:
        raise StateVerificationError(f"Got non-positive token {token}.")
    runtime.uploaded_tokens.append(token)
    return token


def _payload_size(state: SystemState) -> int:
    return sum(len(region.data) for region in state.regions)


def _write_runtime_state_file(data_root: Path) -> Path:
    state_path = data_root / "verification_state.yaml"
    yaml_body = (
        "model: model_i\n"
        "registers:\n"
        "  pc: 0x4300\n"
        "  sp: 0x41e8\n"
        "regions:\n"
        "  - start: 0x3c00\n"
        "    data: \"4849\"\n"
        "  - start: 0x4300\n"
        "    length: 3\n"
        "    data: [0xc3, 0x00, 0x43]\n"
    )
    state_path.write_text(yaml_body, encoding="utf-8")
    return state_path
