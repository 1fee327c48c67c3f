"""YAML overrides for validation rules.

This module loads an optional rules file that adjusts count thresholds
and extends known-field lists without code changes. Example::

    version: 1
    platforms:
      tinder:
        min_message_count: 5
        entities:
          messages:
            known_fields: [liked]
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Mapping, Sequence, cast

import yaml

from core.errors import AfterglowConfigError
from core.types import SUPPORTED_PLATFORMS
from core.validation_rules import EntityRules, ValidationRules, default_rules

_PLATFORM_KEYS = {"min_message_count", "min_match_count", "entities"}
_ENTITY_KEYS = {"required_fields", "known_fields"}


def load_rules_file(rules_path: Path) -> dict[str, ValidationRules]:
    """Load and validate a YAML rules file.

    Args:
        rules_path: File path to the YAML rules file.

    Returns:
        Rules keyed by platform, defaults merged with file overrides.

    Raises:
        AfterglowConfigError: If the file is unreadable or invalid.
    """
    payload = _load_yaml_payload(rules_path)
    root_mapping = _expect_mapping(payload, "rules file root")
    _validate_keys(root_mapping, {"version", "platforms"}, "rules file root")
    if root_mapping.get("version") != 1:
        raise AfterglowConfigError("Rules file field 'version' must be 1.")
    platforms_mapping = _expect_mapping(root_mapping.get("platforms", {}), "rules platforms")
    rules: dict[str, ValidationRules] = {
        platform: default_rules(platform) for platform in SUPPORTED_PLATFORMS
    }
    for platform, platform_payload in platforms_mapping.items():
        if platform not in SUPPORTED_PLATFORMS:
            raise AfterglowConfigError(
                f"Unsupported platform '{platform}' in rules file. "
                f"Use one of: {', '.join(SUPPORTED_PLATFORMS)}."
            )
        rules[platform] = _apply_platform_overrides(rules[platform], platform_payload, platform)
    return rules


def _load_yaml_payload(rules_path: Path) -> object:
    rules_file = rules_path.expanduser().resolve()
    if not rules_file.exists():
        raise AfterglowConfigError(
            f"Rules file does not exist at {rules_file}. Fix AFTERGLOW_RULES_PATH."
        )
    try:
        payload = cast(object, yaml.safe_load(rules_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise AfterglowConfigError(
            f"Failed to read rules file at {rules_file}: {error}."
        ) from error
    except yaml.YAMLError as error:
        raise AfterglowConfigError(
            f"Failed to parse YAML rules file at {rules_file}: {error}. Fix YAML syntax."
        ) from error
    if payload is None:
        raise AfterglowConfigError(f"Rules file at {rules_file} is empty.")
    return payload


def _apply_platform_overrides(
    base: ValidationRules,
    payload: object,
    platform: str,
) -> ValidationRules:
    context = f"rules for {platform}"
    platform_mapping = _expect_mapping(payload, context)
    _validate_keys(platform_mapping, _PLATFORM_KEYS, context)
    entities = dict(base.entities)
    raw_entities = _expect_mapping(platform_mapping.get("entities", {}), f"{context} entities")
    for entity_name, entity_payload in raw_entities.items():
        entities[entity_name] = _apply_entity_overrides(
            base.entity(entity_name), entity_payload, f"{context} entity '{entity_name}'"
        )
    return replace(
        base,
        entities=entities,
        min_message_count=_optional_count(
            platform_mapping, "min_message_count", base.min_message_count, context
        ),
        min_match_count=_optional_count(
            platform_mapping, "min_match_count", base.min_match_count, context
        ),
    )


def _apply_entity_overrides(base: EntityRules, payload: object, context: str) -> EntityRules:
    entity_mapping = _expect_mapping(payload, context)
    _validate_keys(entity_mapping, _ENTITY_KEYS, context)
    required_fields = base.required_fields
    if "required_fields" in entity_mapping:
        required_fields = _string_tuple(entity_mapping["required_fields"], context)
    known_fields = base.known_fields
    if "known_fields" in entity_mapping:
        extra_fields = _string_tuple(entity_mapping["known_fields"], context)
        known_fields = known_fields + tuple(name for name in extra_fields if name not in known_fields)
    return EntityRules(required_fields=required_fields, known_fields=known_fields)


def _optional_count(
    mapping: Mapping[str, object],
    field_name: str,
    default: int,
    context: str,
) -> int:
    raw_value = mapping.get(field_name)
    if raw_value is None:
        return default
    if isinstance(raw_value, bool) or not isinstance(raw_value, int) or raw_value < 0:
        raise AfterglowConfigError(
            f"Invalid {context}: '{field_name}' must be a non-negative integer."
        )
    return raw_value


def _string_tuple(value: object, context: str) -> tuple[str, ...]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        if all(isinstance(item, str) for item in value):
            return tuple(cast(Sequence[str], value))
    raise AfterglowConfigError(f"Invalid {context}: expected a list of field names.")


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise AfterglowConfigError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise AfterglowConfigError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _validate_keys(mapping: Mapping[str, object], allowed: set[str], context: str) -> None:
    unknown_keys = sorted(set(mapping) - allowed)
    if unknown_keys:
        raise AfterglowConfigError(
            f"Invalid {context}: unknown fields {', '.join(unknown_keys)}."
        )
