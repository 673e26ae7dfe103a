"""RetroState CLI entry points.
This module exposes commands for uploading and inspecting system states.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from cli.verify_command import add_verify_command, run_verify_command
from core.config import RetroStateConfig
from core.errors import RetroStateError
from ingest.state_file import load_state_file
from store.state_payload import state_to_payload
from store.state_sdk import RetroStateClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="retrostate", description="RetroState system-state CLI")
    parser.add_argument("--data-root", help="Override RETROSTATE_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_upload_command(subparsers)
    _add_download_command(subparsers)
    _add_range_command(subparsers)
    _add_states_command(subparsers)
    _add_spans_command(subparsers)
    _add_discard_command(subparsers)
    add_verify_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the RetroState CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.data_root)
        return _dispatch(parser, client, args)
    except RetroStateError as error:
        print(f"error={error}")
        return 1


def _dispatch(
    parser: argparse.ArgumentParser,
    client: RetroStateClient,
    args: argparse.Namespace,
) -> int:
    if args.command == "upload":
        return _run_upload_command(client, args)
    if args.command == "download":
        return _run_download_command(client, args)
    if args.command == "range":
        return _run_range_command(client, args)
    if args.command == "states":
        return _run_states_command(client)
    if args.command == "spans":
        return _run_spans_command(client, args)
    if args.command == "discard":
        return _run_discard_command(client, args)
    if args.command == "verify":
        return run_verify_command(client, args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(data_root: str | None) -> RetroStateClient:
    """Build SDK client with optional data-root override.

    Args:
        data_root: Optional override path.

    Returns:
        Configured SDK client.
    """
    config = RetroStateConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    return RetroStateClient(config)


def _run_upload_command(client: RetroStateClient, args: argparse.Namespace) -> int:
    """Handle upload command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    state = load_state_file(args.state_file)
    token = client.upload_state(state)
    print(token)
    return 0


def _run_download_command(client: RetroStateClient, args: argparse.Namespace) -> int:
    """Handle download command by printing the state as JSON."""
    state = client.download_state(args.token, exclude_memory_data=args.exclude_memory_data)
    print(json.dumps(state_to_payload(state), indent=2))
    return 0


def _run_range_command(client: RetroStateClient, args: argparse.Namespace) -> int:
    """Handle range command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    window = client.download_range(args.token, args.start, args.length)
    if args.output:
        output_path = Path(args.output).expanduser().resolve()
        output_path.write_bytes(window)
        print(output_path)
        return 0
    print(window.hex())
    return 0


def _run_states_command(client: RetroStateClient) -> int:
    for summary in client.list_states():
        print(
            f"{summary.token}\t"
            f"{summary.model}\t"
            f"{summary.region_count}\t"
            f"{summary.created_at.isoformat()}"
        )
    return 0


def _run_spans_command(client: RetroStateClient, args: argparse.Namespace) -> int:
    for span in client.covered_spans(args.token):
        print(f"{span.start:#06x}\t{span.end:#06x}\t{span.length}")
    return 0


def _run_discard_command(client: RetroStateClient, args: argparse.Namespace) -> int:
    client.discard_state(args.token)
    print(f"discarded={args.token}")
    return 0


def _parse_address(raw_value: str) -> int:
    """Parse decimal or 0x-prefixed hex integers for address arguments."""
    try:
        return int(raw_value, 0)
    except ValueError as error:
        raise argparse.ArgumentTypeError(f"invalid integer value: {raw_value!r}") from error


def _add_upload_command(subparsers: Any) -> None:
    """Register upload subcommand."""
    parser = subparsers.add_parser("upload", help="Upload a state described by a YAML file")
    parser.add_argument("state_file", help="YAML or JSON state description file")


def _add_download_command(subparsers: Any) -> None:
    """Register download subcommand."""
    parser = subparsers.add_parser("download", help="Print a stored state as JSON")
    parser.add_argument("token", type=int, help="State token returned by upload")
    parser.add_argument(
        "--exclude-memory-data",
        action="store_true",
        help="Omit region payloads and keep only region start/length",
    )


def _add_range_command(subparsers: Any) -> None:
    """Register range subcommand."""
    parser = subparsers.add_parser("range", help="Read a byte range of a state's memory")
    parser.add_argument("token", type=int, help="State token returned by upload")
    parser.add_argument("--start", type=_parse_address, required=True, help="Start address")
    parser.add_argument("--length", type=_parse_address, required=True, help="Bytes to read")
    parser.add_argument("--output", help="Write raw bytes to this file instead of printing hex")


def _add_states_command(subparsers: Any) -> None:
    """Register states subcommand."""
    subparsers.add_parser("states", help="List stored states")


def _add_spans_command(subparsers: Any) -> None:
    """Register spans subcommand."""
    parser = subparsers.add_parser("spans", help="Show populated memory spans of a state")
    parser.add_argument("token", type=int, help="State token returned by upload")


def _add_discard_command(subparsers: Any) -> None:
    """Register discard subcommand."""
    parser = subparsers.add_parser("discard", help="Remove a stored state")
    parser.add_argument("token", type=int, help="State token returned by upload")
