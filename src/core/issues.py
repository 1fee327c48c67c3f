"""Typed parse issues and their stable codes.

This module defines the three-tier issue model shared by parsers,
validation, and the ingest pipeline. Issue codes are a public contract:
downstream consumers map them to user-facing guidance text.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from typing import Callable, Literal, Mapping

Severity = Literal["critical", "error", "warning"]

IssueCode = Literal[
    "NO_FILES",
    "NO_JSON_FILE",
    "NO_DATA_FILES",
    "UNKNOWN_PLATFORM",
    "INVALID_JSON",
    "INVALID_STRUCTURE",
    "INVALID_DATA_TYPE",
    "MISSING_DATA",
    "INVALID_MESSAGES_TYPE",
    "INVALID_MATCHES_TYPE",
    "PARSE_FAILED",
    "EMPTY_FILE",
    "INSUFFICIENT_DATA",
    "INVALID_HEADER",
    "UNKNOWN_FILE_TYPE",
    "MISSING_REQUIRED_FIELD",
    "UNKNOWN_FIELDS",
    "DUPLICATE_ID",
    "INVALID_TIMESTAMP",
    "MISSING_PARTICIPANT",
    "EMPTY_MESSAGE_BODY",
    "NO_MESSAGES",
    "NO_MATCHES",
    "LOW_MESSAGE_COUNT",
    "LOW_MATCH_COUNT",
    "MESSAGE_PARSE_FAILED",
    "MATCH_PARSE_FAILED",
]


@dataclass(frozen=True)
class ParseIssue:
    """One diagnostic raised while parsing or validating an export.

    Attributes:
        code: Stable issue code.
        message: Human-readable explanation.
        severity: ``critical`` stops the parse, ``error`` flags broken
            data that still ships, ``warning`` is informational.
        field: Optional field name the issue refers to.
        line: Optional one-based row or record index.
        context: Extra structured detail for consumers.
    """

    code: IssueCode
    message: str
    severity: Severity
    field: str | None = None
    line: int | None = None
    context: Mapping[str, object] = dataclass_field(default_factory=dict)

    @property
    def is_critical(self) -> bool:
        """Return whether this issue prevents any data from shipping."""
        return self.severity == "critical"


def create_error(
    code: IssueCode,
    message: str,
    *,
    critical: bool = False,
    field: str | None = None,
    line: int | None = None,
    context: Mapping[str, object] | None = None,
) -> ParseIssue:
    """Build an error-tier issue, critical when requested."""
    return ParseIssue(
        code=code,
        message=message,
        severity="critical" if critical else "error",
        field=field,
        line=line,
        context=dict(context or {}),
    )


def create_warning(
    code: IssueCode,
    message: str,
    *,
    field: str | None = None,
    line: int | None = None,
    context: Mapping[str, object] | None = None,
) -> ParseIssue:
    """Build a warning-tier issue."""
    return ParseIssue(
        code=code,
        message=message,
        severity="warning",
        field=field,
        line=line,
        context=dict(context or {}),
    )


def _platform_title(platform: object) -> str:
    return "Tinder" if platform == "tinder" else "Hinge"


_FRIENDLY_MESSAGES: dict[str, Callable[[Mapping[str, object]], str]] = {
    "MISSING_REQUIRED_FIELD": lambda ctx: (
        f'Missing required field "{ctx.get("field")}" in {ctx.get("entity")}. '
        "This field is essential for processing your data. "
        "Please ensure your export file is complete and not corrupted."
    ),
    "LOW_MESSAGE_COUNT": lambda ctx: (
        f"Found only {ctx.get('actual')} message(s), which seems unusually low. "
        f"Expected at least {ctx.get('expected')}. "
        "This might indicate an incomplete export or file corruption. "
        f"Try re-downloading your data from {_platform_title(ctx.get('platform'))}."
    ),
    "LOW_MATCH_COUNT": lambda ctx: (
        f"Found only {ctx.get('actual')} match(es), which seems unusually low. "
        f"Expected at least {ctx.get('expected')}. "
        "This might indicate an incomplete export. "
        "Please verify your export includes all your conversation data."
    ),
    "NO_MESSAGES": lambda ctx: (
        "No messages found in your export. If you've had conversations, this might "
        "indicate an incomplete export file. Please try downloading your data again."
    ),
    "NO_MATCHES": lambda ctx: (
        "No matches found in your export. If you've had matches before, this might "
        "indicate an incomplete export file. Please try downloading your data again."
    ),
    "INVALID_TIMESTAMP": lambda ctx: (
        f"Invalid timestamp found in {ctx.get('entity')} at line {ctx.get('line')}. "
        f'The date "{ctx.get("value")}" couldn\'t be parsed. '
        "This might indicate file corruption."
    ),
    "MISSING_PARTICIPANT": lambda ctx: (
        f'{str(ctx.get("entity", "message")).capitalize()} references unknown participant '
        f'"{ctx.get("participant_id")}". '
        "This might indicate data corruption or an incomplete export."
    ),
    "EMPTY_MESSAGE_BODY": lambda ctx: (
        f"Empty message body found at line {ctx.get('line')}. While this might be valid "
        "(deleted messages), it's unusual. This message will be included but may "
        "affect analysis."
    ),
    "DUPLICATE_ID": lambda ctx: (
        f'Duplicate {ctx.get("entity")} ID "{ctx.get("id")}" found. '
        "This might indicate data corruption."
    ),
}


def friendly_message(code: str, context: Mapping[str, object] | None = None) -> str:
    """Render the user-facing message for an issue code.

    Args:
        code: Stable issue code.
        context: Template values for the code.

    Returns:
        Friendly message, or a generic one for codes without a template.
    """
    generator = _FRIENDLY_MESSAGES.get(code)
    if generator is None:
        return f"Validation error: {code}"
    return generator(context or {})
