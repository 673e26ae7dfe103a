"""Verification command wiring for RetroState CLI."""

from __future__ import annotations

import argparse
from typing import Any, cast

from core.verification import (
    VerificationMode,
    VerificationOptions,
    render_verification_report,
    run_verification,
    save_verification_report,
)
from store.state_sdk import RetroStateClient


def add_verify_command(subparsers: Any) -> None:
    """Register verify subcommand."""
    parser = subparsers.add_parser(
        "verify",
        help="Run automated end-to-end state store checks",
    )
    parser.add_argument(
        "--mode",
        choices=("quick", "full"),
        default="quick",
        help="Verification mode",
    )
    parser.add_argument(
        "--keep-artifacts",
        action="store_true",
        help="Keep runtime verification data root even when all checks pass",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop after the first failed check",
    )


def run_verify_command(client: RetroStateClient, args: argparse.Namespace) -> int:
    """Execute verification workflow and print check report."""
    options = VerificationOptions(
        mode=cast(VerificationMode, args.mode),
        keep_artifacts=args.keep_artifacts,
        fail_fast=args.fail_fast,
    )
    report = run_verification(client, options)
    report_path = save_verification_report(report)
    print(render_verification_report(report))
    if report_path is not None:
        print(f"report_path={report_path}")
    return 0 if report.failed_count == 0 else 1
