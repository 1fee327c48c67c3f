"""Afterglow CLI entry points.
This module exposes ingest and validate commands for dating exports.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from core.config import AfterglowConfig, validate_timezone
from core.errors import AfterglowError
from core.issues import ParseIssue
from core.types import SUPPORTED_PLATFORMS, ParseResult
from store.afterglow_sdk import AfterglowClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="afterglow", description="Afterglow export ingestion")
    parser.add_argument("--output-root", help="Override AFTERGLOW_OUTPUT_ROOT for this command")
    parser.add_argument("--timezone", help="Override AFTERGLOW_TIMEZONE for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_ingest_command(subparsers)
    _add_validate_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Afterglow CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.output_root, args.timezone)
        if args.command == "ingest":
            return _run_ingest_command(client, args)
        if args.command == "validate":
            return _run_validate_command(client, args)
    except AfterglowError as error:
        print(f"error={error}")
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _add_ingest_command(subparsers: argparse._SubParsersAction) -> None:
    ingest_parser = subparsers.add_parser("ingest", help="Parse an export and write a batch")
    ingest_parser.add_argument("source", help="ZIP archive, directory, or JSON/CSV file")
    ingest_parser.add_argument(
        "--platform",
        choices=SUPPORTED_PLATFORMS,
        help="Export platform; detected from file names when omitted",
    )
    ingest_parser.add_argument("--batch", help="Batch directory name")


def _add_validate_command(subparsers: argparse._SubParsersAction) -> None:
    validate_parser = subparsers.add_parser(
        "validate", help="Run the cheap structural pre-check only"
    )
    validate_parser.add_argument("source", help="ZIP archive, directory, or JSON/CSV file")
    validate_parser.add_argument(
        "--platform",
        choices=SUPPORTED_PLATFORMS,
        help="Export platform; detected from file names when omitted",
    )


def _build_client(output_root: str | None, timezone: str | None) -> AfterglowClient:
    """Build SDK client with optional overrides.

    Args:
        output_root: Optional batch root override.
        timezone: Optional timezone override.

    Returns:
        Configured SDK client.
    """
    config = AfterglowConfig.from_env()
    if output_root:
        config = replace(config, output_root=Path(output_root).expanduser().resolve())
    if timezone:
        config = replace(config, timezone=validate_timezone(timezone))
    return AfterglowClient(config)


def _run_ingest_command(client: AfterglowClient, args: argparse.Namespace) -> int:
    """Handle ingest command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    outcome = client.ingest(Path(args.source), args.platform, args.batch)
    _print_summary(outcome.platform, outcome.result)
    if outcome.batch_dir is None:
        return 1
    print(f"batch_path={outcome.batch_dir}")
    return 0


def _run_validate_command(client: AfterglowClient, args: argparse.Namespace) -> int:
    """Handle validate command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    validations = client.validate(Path(args.source), args.platform)
    all_valid = bool(validations)
    for item in validations:
        print(f"{item.filename}\t{'valid' if item.validation.valid else 'invalid'}")
        for issue in item.validation.errors:
            print(_format_issue(issue))
        all_valid = all_valid and item.validation.valid
    return 0 if all_valid else 1


def _print_summary(platform: str, result: ParseResult) -> None:
    metadata = result.metadata
    print(f"platform={platform}")
    print(f"success={str(result.success).lower()}")
    if metadata is not None:
        print(f"messages={metadata.message_count}")
        print(f"matches={metadata.match_count}")
        print(f"participants={metadata.participant_count}")
        if metadata.date_range is not None:
            print(f"date_range={metadata.date_range.earliest}..{metadata.date_range.latest}")
    for issue in (*result.errors, *result.warnings):
        print(_format_issue(issue))


def _format_issue(issue: ParseIssue) -> str:
    location = f" line={issue.line}" if issue.line is not None else ""
    return f"{issue.severity}\t{issue.code}{location}\t{issue.message}"
