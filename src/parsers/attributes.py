"""Opaque attribute capture for unrecognized source fields.

Unknown fields are never dropped: scalars and homogeneous string or
number lists are kept as-is, anything else becomes canonical JSON text.
"""

from __future__ import annotations

import json
from typing import Iterable, Mapping

from core.types import AttributeValue


def extract_unknown_fields(
    record: Mapping[str, object],
    known_fields: Iterable[str],
) -> dict[str, AttributeValue] | None:
    """Collect fields of a raw record that the parser does not map.

    Args:
        record: Raw source record.
        known_fields: Fields the parser maps onto the unified model.

    Returns:
        Attribute map in source key order, or None when nothing is unknown.
    """
    known = set(known_fields)
    attributes = {
        key: to_attribute_value(value) for key, value in record.items() if key not in known
    }
    return attributes or None


def to_attribute_value(value: object) -> AttributeValue:
    """Convert a raw JSON value into an attribute value.

    Args:
        value: Decoded JSON value.

    Returns:
        Scalar, homogeneous tuple, or canonical JSON text.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        if all(isinstance(item, str) for item in value):
            return tuple(value)
        if all(isinstance(item, (int, float)) and not isinstance(item, bool) for item in value):
            return tuple(value)
    return canonical_json(value)


def canonical_json(value: object) -> str:
    """Serialize a value with the one fixed canonical JSON rule."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
