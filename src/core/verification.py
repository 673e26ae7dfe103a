"""Self-check runner for the state store.

Each check runs against a scratch data root and reports how many states
it uploaded and how many reconstructed bytes it compared. The scratch
root is removed after a clean run and kept for inspection otherwise.
"""

from __future__ import annotations

import json
import shutil
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Literal

from core.constants import VERIFICATION_REPORT_FILE_NAME
from core.errors import RetroStateError
from core.logging_config import get_logger
from core.verification_checks import (
    VerificationCheck,
    VerificationMode,
    VerificationRuntime,
    build_checks,
    build_runtime,
)
from store.state_sdk import RetroStateClient

_LOGGER = get_logger(__name__)

CheckStatus = Literal["passed", "failed"]


@dataclass(frozen=True)
class VerificationOptions:
    """Options controlling a verification run."""

    mode: VerificationMode
    keep_artifacts: bool
    fail_fast: bool


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one check and the store work it performed."""

    check_id: str
    title: str
    status: CheckStatus
    details: str
    states_uploaded: int
    bytes_compared: int
    duration_seconds: float


@dataclass(frozen=True)
class VerificationReport:
    """All check outcomes of one run."""

    mode: VerificationMode
    data_root: str
    artifacts_kept: bool
    checks: tuple[CheckResult, ...]

    @property
    def passed_count(self) -> int:
        return sum(1 for check in self.checks if check.status == "passed")

    @property
    def failed_count(self) -> int:
        return len(self.checks) - self.passed_count

    @property
    def states_uploaded(self) -> int:
        return sum(check.states_uploaded for check in self.checks)

    @property
    def bytes_compared(self) -> int:
        return sum(check.bytes_compared for check in self.checks)


def run_verification(
    client: RetroStateClient,
    options: VerificationOptions,
) -> VerificationReport:
    """Run the check list for one mode against a scratch data root."""
    runtime = build_runtime(client, options.mode)
    results: list[CheckResult] = []
    for check in build_checks(options.mode):
        result = _run_check(check, runtime)
        results.append(result)
        if result.status == "failed" and options.fail_fast:
            break
    artifacts_kept = options.keep_artifacts or any(row.status == "failed" for row in results)
    if not artifacts_kept:
        shutil.rmtree(runtime.data_root, ignore_errors=True)
    return VerificationReport(
        mode=options.mode,
        data_root=str(runtime.data_root),
        artifacts_kept=artifacts_kept,
        checks=tuple(results),
    )


def _run_check(check: VerificationCheck, runtime: VerificationRuntime) -> CheckResult:
    uploads_before = len(runtime.uploaded_tokens)
    bytes_before = runtime.bytes_compared
    started_at = time.monotonic()
    status: CheckStatus = "passed"
    try:
        details = check.run(runtime)
    except RetroStateError as error:
        status = "failed"
        details = f"{type(error).__name__}: {error}"
    result = CheckResult(
        check_id=check.check_id,
        title=check.title,
        status=status,
        details=details,
        states_uploaded=len(runtime.uploaded_tokens) - uploads_before,
        bytes_compared=runtime.bytes_compared - bytes_before,
        duration_seconds=round(time.monotonic() - started_at, 3),
    )
    _LOGGER.info(
        "verification_check_finished",
        check_id=result.check_id,
        status=result.status,
        states_uploaded=result.states_uploaded,
        bytes_compared=result.bytes_compared,
    )
    return result


def render_verification_report(report: VerificationReport) -> str:
    """Render one line per check followed by run totals."""
    lines = [f"mode={report.mode} data_root={report.data_root}"]
    for row in report.checks:
        lines.append(
            f"{row.check_id} {row.status:<6} {row.title} "
            f"states={row.states_uploaded} bytes={row.bytes_compared} "
            f"({row.duration_seconds:.3f}s) :: {row.details}"
        )
    lines.append(
        f"checks_passed={report.passed_count}/{len(report.checks)} "
        f"states_uploaded={report.states_uploaded} bytes_compared={report.bytes_compared}"
    )
    if report.artifacts_kept:
        lines.append(f"artifacts kept under {report.data_root}")
    return "\n".join(lines)


def save_verification_report(report: VerificationReport) -> Path | None:
    """Write the report as JSON into a kept data root."""
    if not report.artifacts_kept:
        return None
    report_path = Path(report.data_root) / VERIFICATION_REPORT_FILE_NAME
    payload = asdict(report)
    payload["totals"] = {
        "passed": report.passed_count,
        "failed": report.failed_count,
        "states_uploaded": report.states_uploaded,
        "bytes_compared": report.bytes_compared,
    }
    report_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return report_path
