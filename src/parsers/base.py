"""Shared parser contract and result helpers.

Every platform parser exposes ``platform``, ``version``, ``parse`` and
``validate``. ``parse`` never raises: critical conditions travel as
``AfterglowParseError`` up to ``guarded_parse``, which turns them into a
failed ``ParseResult``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable, Protocol

from core.errors import AfterglowParseError
from core.issues import create_error
from core.logging_config import get_logger
from core.types import (
    ContentValidation,
    DateRange,
    NormalizedMessage,
    ParsedDataset,
    ParseMetadata,
    ParseResult,
    Platform,
)
from transforms.timestamp_normalization import format_utc, parse_timestamp

_LOGGER = get_logger(__name__)


class ExportParser(Protocol):
    """Contract implemented by every platform parser."""

    platform: Platform
    version: str

    def parse(self, content: str, filename: str) -> ParseResult:
        """Parse one decoded export file."""
        ...

    def validate(self, content: str) -> ContentValidation:
        """Cheaply check whether content looks parseable."""
        ...


def guarded_parse(
    platform: Platform,
    filename: str,
    parse_fn: Callable[[], ParseResult],
) -> ParseResult:
    """Run a parse body and convert every failure into a typed result.

    Args:
        platform: Platform being parsed, for logging.
        filename: Source filename, for logging.
        parse_fn: Zero-argument parse body.

    Returns:
        The body's result, or a failed result carrying the critical issue.
    """
    _LOGGER.info("export_parse_started", platform=platform, filename=filename)
    try:
        result = parse_fn()
    except AfterglowParseError as error:
        result = ParseResult.failed((error.issue,))
    except Exception as error:
        result = ParseResult.failed(
            (
                create_error(
                    "PARSE_FAILED",
                    f"Unexpected parsing error: {error}",
                    critical=True,
                    context={"filename": filename},
                ),
            )
        )
    if not result.success:
        _LOGGER.warning(
            "export_parse_failed",
            platform=platform,
            filename=filename,
            codes=[issue.code for issue in result.errors],
        )
    return result


def calculate_date_range(messages: Iterable[NormalizedMessage]) -> DateRange | None:
    """Return earliest and latest valid message timestamps.

    Args:
        messages: Messages to scan.

    Returns:
        Date range in UTC ISO form, or None without valid timestamps.
    """
    instants = [
        parsed for parsed in (parse_timestamp(message.sent_at) for message in messages) if parsed
    ]
    if not instants:
        return None
    return DateRange(earliest=format_utc(min(instants)), latest=format_utc(max(instants)))


def build_metadata(
    platform: Platform,
    version: str,
    dataset: ParsedDataset,
) -> ParseMetadata:
    """Build aggregate metadata for a dataset."""
    return ParseMetadata(
        platform=platform,
        parser_version=version,
        message_count=len(dataset.messages),
        match_count=len(dataset.matches),
        participant_count=len(dataset.participants),
        date_range=calculate_date_range(dataset.messages),
    )


def now_iso() -> str:
    """Return the current wall-clock time in UTC ISO form."""
    return format_utc(datetime.now(timezone.utc))
