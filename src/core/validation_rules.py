"""Per-platform validation rules.

This module declares which raw fields each platform requires and knows
about, and the count thresholds used by post-parse validation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from core.constants import (
    HINGE_JSON_KNOWN_MATCH_FIELDS,
    HINGE_JSON_REQUIRED_CHAT_FIELDS,
    HINGE_KNOWN_MATCH_COLUMNS,
    HINGE_KNOWN_MESSAGE_COLUMNS,
    HINGE_REQUIRED_MATCH_COLUMNS,
    HINGE_REQUIRED_MESSAGE_COLUMNS,
    TINDER_KNOWN_MATCH_FIELDS,
    TINDER_KNOWN_MESSAGE_FIELDS,
    TINDER_KNOWN_USER_FIELDS,
    TINDER_REQUIRED_MATCH_FIELDS,
    TINDER_REQUIRED_MESSAGE_FIELDS,
    TINDER_REQUIRED_PROFILE_FIELDS,
)
from core.types import Platform


@dataclass(frozen=True)
class EntityRules:
    """Field contract for one raw entity collection.

    Attributes:
        required_fields: Fields every record must carry.
        known_fields: Optional fields the parser maps onto the model.
    """

    required_fields: tuple[str, ...] = ()
    known_fields: tuple[str, ...] = ()

    @property
    def recognized_fields(self) -> frozenset[str]:
        """Return every field the parser understands."""
        return frozenset(self.required_fields) | frozenset(self.known_fields)


@dataclass(frozen=True)
class ValidationRules:
    """Validation rules for one platform export layout.

    Attributes:
        platform: Platform the rules apply to.
        entities: Field contracts keyed by raw collection name.
        min_message_count: Warn below this many messages; zero disables.
        min_match_count: Warn below this many matches; zero disables.
    """

    platform: Platform
    entities: Mapping[str, EntityRules] = field(default_factory=dict)
    min_message_count: int = 0
    min_match_count: int = 0

    def entity(self, name: str) -> EntityRules:
        """Return rules for a collection, empty when undeclared."""
        return self.entities.get(name, EntityRules())


TINDER_RULES = ValidationRules(
    platform="tinder",
    entities={
        "messages": EntityRules(TINDER_REQUIRED_MESSAGE_FIELDS, TINDER_KNOWN_MESSAGE_FIELDS),
        "matches": EntityRules(TINDER_REQUIRED_MATCH_FIELDS, TINDER_KNOWN_MATCH_FIELDS),
        "profiles": EntityRules(TINDER_REQUIRED_PROFILE_FIELDS, TINDER_KNOWN_USER_FIELDS),
    },
)

HINGE_CSV_RULES = ValidationRules(
    platform="hinge",
    entities={
        "matches": EntityRules(HINGE_REQUIRED_MATCH_COLUMNS, HINGE_KNOWN_MATCH_COLUMNS),
        "messages": EntityRules(HINGE_REQUIRED_MESSAGE_COLUMNS, HINGE_KNOWN_MESSAGE_COLUMNS),
    },
)

HINGE_JSON_RULES = ValidationRules(
    platform="hinge",
    entities={
        "matches": EntityRules((), HINGE_JSON_KNOWN_MATCH_FIELDS),
        "messages": EntityRules(HINGE_JSON_REQUIRED_CHAT_FIELDS, ()),
    },
)

_DEFAULT_RULES: dict[str, ValidationRules] = {
    "tinder": TINDER_RULES,
    "hinge": HINGE_CSV_RULES,
}


def default_rules(platform: Platform) -> ValidationRules:
    """Return the default rules for a platform."""
    return _DEFAULT_RULES[platform]
