"""Afterglow exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Parsers never let these escape; they convert them into typed results.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.issues import ParseIssue


class AfterglowError(Exception):
    """Base exception for all Afterglow failures."""


class AfterglowConfigError(AfterglowError):
    """Raised for invalid runtime configuration."""


class AfterglowIngestError(AfterglowError):
    """Raised for unreadable export sources and unsupported platforms."""


class AfterglowStoreError(AfterglowError):
    """Raised for batch persistence failures."""


class AfterglowParseError(AfterglowError):
    """Raised inside a parser for a condition that stops the parse.

    The parser's public entry point catches it and returns the carried
    issue as a failed parse result.
    """

    def __init__(self, issue: ParseIssue) -> None:
        super().__init__(issue.message)
        self.issue = issue
