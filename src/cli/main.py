"""cropledger CLI entry points.
This module exposes command invocation and command listing.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys
from typing import Any, Callable, Sequence

from contract.client import CropLedgerClient
from core.config import LedgerConfig
from core.constants import SUPPORTED_BACKEND_KINDS, TEXT_ENCODING
from core.errors import CropLedgerError
from core.logging_config import configure_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="cropledger", description="Crop ledger record CLI")
    parser.add_argument("--data-root", help="Override CROPLEDGER_DATA_ROOT for this command")
    parser.add_argument(
        "--backend",
        choices=SUPPORTED_BACKEND_KINDS,
        help="Override CROPLEDGER_BACKEND for this command",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_invoke_command(subparsers)
    _add_commands_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the cropledger CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    handlers: dict[str, Callable[[CropLedgerClient, argparse.Namespace], int]] = {
        "invoke": _run_invoke_command,
        "commands": _run_commands_command,
    }
    try:
        config = _build_config(args.data_root, args.backend)
        configure_logging(config.log_level)
        client = CropLedgerClient(config)
    except CropLedgerError as error:
        print(f"error={error.kind}: {error}", file=sys.stderr)
        return 2
    return handlers[args.command](client, args)


def _build_config(data_root: str | None, backend: str | None) -> LedgerConfig:
    """Build config with optional CLI overrides.

    Args:
        data_root: Optional override path.
        backend: Optional backend kind override.

    Returns:
        Resolved runtime config.
    """
    config = LedgerConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    if backend:
        config = replace(config, backend_kind=backend)
    return config


def _run_invoke_command(client: CropLedgerClient, args: argparse.Namespace) -> int:
    """Handle invoke command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code, 0 on success and 1 on a failed invocation.
    """
    result = client.invoke(args.ledger_command, args.arguments)
    if not result.ok:
        print(f"error={result.error_kind} status={result.status}: {result.message}", file=sys.stderr)
        return 1
    if result.payload:
        print(result.payload.decode(TEXT_ENCODING))
    return 0


def _run_commands_command(client: CropLedgerClient, args: argparse.Namespace) -> int:
    """Handle commands command."""
    for command in client.commands():
        print(command)
    return 0


def _add_invoke_command(subparsers: Any) -> None:
    """Register invoke subcommand."""
    parser = subparsers.add_parser("invoke", help="Invoke a ledger command")
    parser.add_argument("ledger_command", help="Command name, e.g. create or readCrop")
    parser.add_argument(
        "arguments",
        nargs=argparse.REMAINDER,
        help="Positional string arguments passed to the command",
    )


def _add_commands_command(subparsers: Any) -> None:
    """Register commands subcommand."""
    subparsers.add_parser("commands", help="List supported ledger commands")
