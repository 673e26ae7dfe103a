"""Unit tests for verification workflow helpers."""

from __future__ import annotations

import json
import random
from dataclasses import replace
from pathlib import Path

from core.config import RetroStateConfig
from core.verification import (
    VerificationOptions,
    render_verification_report,
    run_verification,
    save_verification_report,
)
from core.verification_checks import build_checks, build_random_state
from store.state_sdk import RetroStateClient
from store.state_store import StateStore


class _ZeroStore(StateStore):
    """Store whose range reads always return zeros."""

    def read_range(self, token: int, start: int, length: int) -> bytes:
        return bytes(length)


class _FakeClient(RetroStateClient):
    """Client whose clones read memory as all zeros."""

    def with_data_root(self, data_root: str) -> RetroStateClient:
        config = replace(self.config, data_root=Path(data_root))
        return RetroStateClient(config, store=_ZeroStore())


def _client(tmp_path) -> RetroStateClient:
    return RetroStateClient(replace(RetroStateConfig.from_env(), data_root=tmp_path))


def test_quick_verification_passes_all_checks(tmp_path) -> None:
    """Quick verification should pass against the real store."""
    options = VerificationOptions(mode="quick", keep_artifacts=False, fail_fast=False)

    report = run_verification(_client(tmp_path), options)

    assert report.failed_count == 0 and report.passed_count == 6


def test_full_verification_adds_concurrency_and_reload(tmp_path) -> None:
    """Full verification should run the extra checks and pass."""
    options = VerificationOptions(mode="full", keep_artifacts=False, fail_fast=False)

    report = run_verification(_client(tmp_path), options)

    assert [row.check_id for row in report.checks][-2:] == ["V007", "V008"] and (
        report.failed_count == 0
    )


def test_verification_reports_failed_range_checks(tmp_path) -> None:
    """A store returning wrong bytes should fail the range check and keep artifacts."""
    client = _FakeClient(replace(RetroStateConfig.from_env(), data_root=tmp_path))
    options = VerificationOptions(mode="quick", keep_artifacts=False, fail_fast=False)

    report = run_verification(client, options)
    statuses = {row.check_id: row.status for row in report.checks}

    assert statuses["V004"] == "failed" and report.artifacts_kept


def test_fail_fast_stops_after_first_failure(tmp_path) -> None:
    """Fail-fast mode should stop at the first failing check."""
    client = _FakeClient(replace(RetroStateConfig.from_env(), data_root=tmp_path))
    options = VerificationOptions(mode="quick", keep_artifacts=False, fail_fast=True)

    report = run_verification(client, options)

    assert report.checks[-1].status == "failed" and report.checks[-1].check_id == "V004"


def test_render_and_save_report(tmp_path) -> None:
    """Kept reports should render summary lines and persist JSON."""
    options = VerificationOptions(mode="quick", keep_artifacts=True, fail_fast=False)
    report = run_verification(_client(tmp_path), options)

    rendered = render_verification_report(report)
    report_path = save_verification_report(report)

    assert (
        "checks_passed=6/6" in rendered
        and report_path is not None
        and json.loads(report_path.read_text(encoding="utf-8"))["totals"]["passed"] == 6
    )


def test_build_checks_quick_mode_has_six_checks() -> None:
    """Quick mode should run the core check list only."""
    assert len(build_checks("quick")) == 6


def test_build_random_state_has_fixed_registers() -> None:
    """Generated states should carry the reference register file."""
    state = build_random_state(random.Random(1), 16)

    assert state.registers.r_2 == 200 and len(state.regions) == 10


def test_checks_report_uploads_and_compared_bytes(tmp_path) -> None:
    """Each check should tally the states it uploaded and bytes it compared."""
    options = VerificationOptions(mode="quick", keep_artifacts=False, fail_fast=False)

    report = run_verification(_client(tmp_path), options)
    by_id = {row.check_id: row for row in report.checks}

    assert (
        by_id["V002"].states_uploaded == 0
        and by_id["V004"].states_uploaded == 1
        and by_id["V004"].bytes_compared == 50
        and by_id["V006"].bytes_compared == 4
        and report.states_uploaded == 4
    )


def test_failed_check_still_reports_its_upload(tmp_path) -> None:
    """A failing range check should still count the state it uploaded."""
    client = _FakeClient(replace(RetroStateConfig.from_env(), data_root=tmp_path))
    options = VerificationOptions(mode="quick", keep_artifacts=False, fail_fast=True)

    report = run_verification(client, options)

    assert report.checks[-1].states_uploaded == 1 and report.checks[-1].bytes_compared == 4
