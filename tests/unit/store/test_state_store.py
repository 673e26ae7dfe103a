"""Unit tests for the in-memory state store."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from core.errors import InvalidRangeError, InvalidRegionError, UnknownTokenError
from core.types import MemoryRegion, Registers, SystemState
from store.state_store import StateStore


def _sample_state() -> SystemState:
    return SystemState(
        model="model_iii",
        registers=Registers(pc=5, sp=3, ix=9, r_2=200),
        regions=(
            MemoryRegion(start=1000, length=4, data=bytes([42, 43, 44, 45])),
            MemoryRegion(start=1100, length=8, data=bytes([1, 2, 3, 4, 5, 6, 7, 8])),
            MemoryRegion(start=1108, length=6, data=bytes([11, 22, 33, 44, 55, 66])),
            MemoryRegion(start=1120, length=5, data=bytes([101, 102, 103, 104, 105])),
        ),
    )


def test_ingest_returns_positive_token() -> None:
    """Ingest should hand out a positive token."""
    store = StateStore()

    token = store.ingest(_sample_state())

    assert token > 0


def test_download_state_roundtrips_snapshot() -> None:
    """Downloaded state should equal the uploaded state."""
    store = StateStore()
    state = _sample_state()
    token = store.ingest(state)

    downloaded = store.download_state(token)

    assert downloaded == state


def test_download_state_keeps_overlapping_regions_as_submitted() -> None:
    """Overlapping regions should be stored unmerged and in order."""
    store = StateStore()
    state = SystemState(
        regions=(
            MemoryRegion(start=0, length=4, data=b"abcd"),
            MemoryRegion(start=2, length=4, data=b"WXYZ"),
        )
    )
    token = store.ingest(state)

    downloaded = store.download_state(token)

    assert downloaded.regions == state.regions


def test_download_state_excluding_memory_keeps_layout() -> None:
    """Metadata-only downloads should keep start/length and drop data."""
    store = StateStore()
    state = _sample_state()
    token = store.ingest(state)

    downloaded = store.download_state(token, exclude_memory_data=True)

    assert (
        [(region.start, region.length) for region in downloaded.regions]
        == [(region.start, region.length) for region in state.regions]
        and all(region.data == b"" for region in downloaded.regions)
        and downloaded.registers == state.registers
        and downloaded.model == state.model
    )


def test_ingest_rejects_negative_start_without_storing() -> None:
    """A negative region start should fail and leave the store empty."""
    store = StateStore()
    state = SystemState(regions=(MemoryRegion(start=-10, length=1, data=b"\x00"),))

    with pytest.raises(InvalidRegionError):
        store.ingest(state)

    assert store.list_states() == ()


def test_rejected_ingest_does_not_touch_prior_state() -> None:
    """A failed upload should leave earlier snapshots untouched."""
    store = StateStore()
    token = store.ingest(_sample_state())
    bad_state = SystemState(regions=(MemoryRegion(start=0, length=3, data=b"\x00"),))

    with pytest.raises(InvalidRegionError):
        store.ingest(bad_state)

    assert store.download_state(token) == _sample_state() and len(store.list_states()) == 1


def test_ingest_copies_mutable_payloads() -> None:
    """Mutating a caller buffer after upload should not change stored bytes."""
    store = StateStore()
    payload = bytearray(b"\x01\x02\x03")
    token = store.ingest(SystemState(regions=(MemoryRegion(start=0, length=3, data=payload),)))
    payload[0] = 0xFF

    window = store.read_range(token, 0, 3)

    assert window == b"\x01\x02\x03"


def test_read_range_reconstructs_gap_and_straddle() -> None:
    """Range reads should combine region tails, holes, and heads."""
    store = StateStore()
    token = store.ingest(_sample_state())

    window = store.read_range(token, 1111, 12)

    assert window == bytes([44, 55, 66, 0, 0, 0, 0, 0, 0, 101, 102, 103])


def test_read_range_is_idempotent() -> None:
    """Repeated reads with identical arguments should return identical bytes."""
    store = StateStore()
    token = store.ingest(_sample_state())

    windows = {store.read_range(token, 990, 150) for _ in range(5)}

    assert len(windows) == 1


def test_read_range_rejects_negative_length() -> None:
    """Negative lengths should be rejected for known tokens."""
    store = StateStore()
    token = store.ingest(_sample_state())

    with pytest.raises(InvalidRangeError):
        store.read_range(token, 1000, -4)

    assert True


def test_read_range_unknown_token_raises() -> None:
    """Reads against never-issued tokens should fail."""
    store = StateStore()

    with pytest.raises(UnknownTokenError):
        store.read_range(12345, 0, 4)

    assert True


def test_tokens_do_not_cross_store_instances() -> None:
    """A token from one store should be unknown to another store."""
    first_store = StateStore()
    second_store = StateStore()
    token = first_store.ingest(_sample_state())

    with pytest.raises(UnknownTokenError):
        second_store.download_state(token)

    assert True


def test_discard_removes_entry() -> None:
    """Discarded tokens should no longer resolve."""
    store = StateStore()
    token = store.ingest(_sample_state())
    store.discard(token)

    with pytest.raises(UnknownTokenError):
        store.read_range(token, 1000, 4)

    assert store.list_states() == ()


def test_discard_unknown_token_raises() -> None:
    """Discarding an unknown token should fail."""
    store = StateStore()

    with pytest.raises(UnknownTokenError):
        store.discard(99)

    assert True


def test_discarded_token_is_not_reissued() -> None:
    """A store should never hand out a discarded token again."""
    first_token = StateStore(token_seed=5).ingest(_sample_state())
    store = StateStore(token_seed=5)
    token = store.ingest(_sample_state())
    store.discard(token)

    next_token = store.ingest(_sample_state())

    assert token == first_token and next_token != token


def test_list_states_orders_by_creation() -> None:
    """Listing should report live snapshots oldest first."""
    store = StateStore()
    first_token = store.ingest(_sample_state())
    second_token = store.ingest(SystemState(model="model_4"))

    summaries = store.list_states()

    assert [summary.token for summary in summaries] == [first_token, second_token]


def test_covered_spans_reports_merged_coverage() -> None:
    """Span listing should merge the adjacent regions of a snapshot."""
    store = StateStore()
    token = store.ingest(_sample_state())

    spans = store.covered_spans(token)

    assert [(span.start, span.end) for span in spans] == [(1000, 1004), (1100, 1114), (1120, 1125)]


def test_concurrent_ingest_and_reads_stay_isolated() -> None:
    """Parallel uploads should get distinct tokens and read back their own bytes."""
    store = StateStore()
    states = [
        SystemState(regions=(MemoryRegion(start=index, length=8, data=bytes([index]) * 8),))
        for index in range(64)
    ]

    with ThreadPoolExecutor(max_workers=8) as executor:
        tokens = list(executor.map(store.ingest, states))
        windows = list(
            executor.map(lambda pair: store.read_range(pair[1], pair[0], 8), enumerate(tokens))
        )

    assert len(set(tokens)) == 64 and all(
        window == bytes([index]) * 8 for index, window in enumerate(windows)
    )
