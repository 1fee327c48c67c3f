"""Runtime configuration model for Afterglow.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.constants import (
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_WORKERS,
    DEFAULT_OUTPUT_ROOT,
    DEFAULT_TIMEZONE,
)
from core.errors import AfterglowConfigError


@dataclass(frozen=True)
class AfterglowConfig:
    """Validated runtime configuration.

    Attributes:
        output_root: Local root directory for written batches.
        timezone: IANA zone used when normalizing timestamps.
        max_workers: Thread pool size for multi-file parsing.
        max_file_size: Largest export file, in bytes, that is read.
        rules_path: Optional YAML file overriding validation rules.
    """

    output_root: Path
    timezone: str
    max_workers: int
    max_file_size: int
    rules_path: Path | None

    @classmethod
    def from_env(cls) -> "AfterglowConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            AfterglowConfigError: If environment values are invalid.
        """
        output_root_value = os.getenv("AFTERGLOW_OUTPUT_ROOT", str(DEFAULT_OUTPUT_ROOT))
        timezone = validate_timezone(os.getenv("AFTERGLOW_TIMEZONE", DEFAULT_TIMEZONE))
        max_workers = _parse_positive_int(
            "AFTERGLOW_MAX_WORKERS", os.getenv("AFTERGLOW_MAX_WORKERS", str(DEFAULT_MAX_WORKERS))
        )
        max_file_size = _parse_positive_int(
            "AFTERGLOW_MAX_FILE_SIZE",
            os.getenv("AFTERGLOW_MAX_FILE_SIZE", str(DEFAULT_MAX_FILE_SIZE)),
        )
        rules_value = os.getenv("AFTERGLOW_RULES_PATH")
        return cls(
            output_root=Path(output_root_value).expanduser().resolve(),
            timezone=timezone,
            max_workers=max_workers,
            max_file_size=max_file_size,
            rules_path=Path(rules_value).expanduser() if rules_value else None,
        )


def validate_timezone(raw_value: str) -> str:
    """Validate an IANA timezone name.

    Args:
        raw_value: Zone name such as ``UTC`` or ``America/New_York``.

    Returns:
        The validated zone name.

    Raises:
        AfterglowConfigError: If the zone is unknown.
    """
    if raw_value == DEFAULT_TIMEZONE:
        return raw_value
    try:
        ZoneInfo(raw_value)
    except (ZoneInfoNotFoundError, ValueError) as error:
        raise AfterglowConfigError(
            f"Invalid timezone '{raw_value}'. "
            "Use an IANA zone name such as 'UTC' or 'Europe/Berlin'."
        ) from error
    return raw_value


def _parse_positive_int(name: str, raw_value: str) -> int:
    """Parse a positive integer environment value.

    Args:
        name: Environment variable name, for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer.

    Raises:
        AfterglowConfigError: If value is not a positive integer.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise AfterglowConfigError(
            f"Invalid {name} value: expected integer, got '{raw_value}'. "
            f"Set {name} to a positive number."
        ) from error
    if value <= 0:
        raise AfterglowConfigError(
            f"Invalid {name} value: expected a positive integer, got {value}."
        )
    return value
