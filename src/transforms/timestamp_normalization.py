"""Timestamp normalization transform.

This module converts heterogeneous export timestamps (ISO strings,
RFC 2822 dates, epoch seconds or milliseconds, datetime objects) into
canonical ISO-8601 text. Unparseable input yields ``None``; nothing here
raises.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone as dt_timezone
from email.utils import parsedate_to_datetime
from typing import Iterable, Mapping, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.constants import DEFAULT_TIMEZONE, MILLISECOND_THRESHOLD

TimestampInput = Union[str, int, float, datetime, None]

_EPOCH = datetime(1970, 1, 1, tzinfo=dt_timezone.utc)
_ISO_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:[.,]\d{1,9})?)?)?"
    r"(?:Z|[+-]\d{2}(?::?\d{2})?)?$",
    re.IGNORECASE,
)
_FRACTION_PATTERN = re.compile(r"([.,])(\d+)")
_INTEGER_PATTERN = re.compile(r"^-?[0-9]+$")
_FALLBACK_FORMATS = (
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%B %d, %Y %H:%M:%S",
    "%B %d, %Y",
    "%b %d, %Y %H:%M:%S",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%a %b %d %Y %H:%M:%S",
)


def normalize_timestamp(value: TimestampInput, timezone: str = DEFAULT_TIMEZONE) -> str | None:
    """Normalize one timestamp to ISO-8601 text.

    Numbers above ``10_000_000_000`` are epoch milliseconds, smaller
    numbers are epoch seconds. Strings are parsed as strict ISO-8601
    first, then with permissive fallbacks. Naive values are read as UTC.

    Args:
        value: Raw timestamp in any supported representation.
        timezone: IANA zone for the output; ``UTC`` renders with a ``Z``
            suffix, other zones render their offset.

    Returns:
        ISO-8601 text, or None when the input cannot be interpreted.
    """
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    if timezone == DEFAULT_TIMEZONE:
        return format_utc(parsed)
    try:
        zone = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return None
    return parsed.astimezone(zone).isoformat(timespec="milliseconds")


def parse_timestamp(value: TimestampInput) -> datetime | None:
    """Parse a raw timestamp into an aware datetime.

    Args:
        value: Raw timestamp.

    Returns:
        Aware datetime, or None when unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _ensure_aware(value)
    if isinstance(value, (int, float)):
        return _parse_epoch(value)
    if isinstance(value, str):
        return _parse_string(value.strip())
    return None


def is_parseable_timestamp(value: object) -> bool:
    """Return whether a value parses as a timestamp."""
    if value is not None and not isinstance(value, (str, int, float, datetime)):
        return False
    return parse_timestamp(value) is not None


def format_utc(value: datetime) -> str:
    """Render an aware datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    utc_value = value.astimezone(dt_timezone.utc)
    milliseconds = utc_value.microsecond // 1000
    return f"{utc_value:%Y-%m-%dT%H:%M:%S}.{milliseconds:03d}Z"


def normalize_timestamp_fields(
    record: Mapping[str, object],
    fields: Iterable[str],
    timezone: str = DEFAULT_TIMEZONE,
) -> dict[str, object]:
    """Normalize selected timestamp fields of a mapping.

    Args:
        record: Source mapping; not modified.
        fields: Keys holding timestamps.
        timezone: Output zone.

    Returns:
        Copy of the mapping with present, truthy fields normalized.
    """
    normalized = dict(record)
    for field_name in fields:
        raw_value = normalized.get(field_name)
        if raw_value:
            normalized[field_name] = normalize_timestamp(_as_input(raw_value), timezone)
    return normalized


def _as_input(value: object) -> TimestampInput:
    if isinstance(value, (str, int, float, datetime)):
        return value
    return None


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt_timezone.utc)
    return value


def _parse_epoch(value: int | float) -> datetime | None:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    milliseconds = value if value > MILLISECOND_THRESHOLD else value * 1000
    try:
        return _EPOCH + timedelta(milliseconds=milliseconds)
    except OverflowError:
        return None


def _parse_string(text: str) -> datetime | None:
    if not text:
        return None
    if _INTEGER_PATTERN.match(text):
        return _parse_numeric_string(text)
    if _ISO_PATTERN.match(text):
        parsed = _parse_iso(text)
        if parsed is not None:
            return parsed
    return _parse_permissive(text)


def _parse_numeric_string(text: str) -> datetime | None:
    if len(text) == 4:
        try:
            return datetime(int(text), 1, 1, tzinfo=dt_timezone.utc)
        except ValueError:
            return None
    try:
        epoch_value = int(text)
    except ValueError:
        # int() refuses digit strings past the interpreter's conversion limit
        return None
    return _parse_epoch(epoch_value)


def _parse_iso(text: str) -> datetime | None:
    candidate = text.replace(" ", "T", 1)
    if candidate[-1] in "zZ":
        candidate = candidate[:-1] + "+00:00"
    candidate = _FRACTION_PATTERN.sub(_truncate_fraction, candidate, count=1)
    try:
        return _ensure_aware(datetime.fromisoformat(candidate))
    except ValueError:
        return None


def _truncate_fraction(match: re.Match[str]) -> str:
    return "." + match.group(2)[:6].ljust(6, "0")


def _parse_permissive(text: str) -> datetime | None:
    try:
        return _ensure_aware(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        pass
    for date_format in _FALLBACK_FORMATS:
        try:
            return _ensure_aware(datetime.strptime(text, date_format))
        except ValueError:
            continue
    return None
