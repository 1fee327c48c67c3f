"""Schema snapshots and structural validation.

This module captures the observed raw schema of an export for the audit
trail, gates obviously malformed payloads before per-record parsing, and
runs a post-parse pass that flags softer data-quality problems once the
unified entities exist.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping

from core.constants import SCHEMA_SAMPLE_SIZE
from core.issues import ParseIssue, create_error, create_warning, friendly_message
from core.types import EntitySchema, ParseResult, Platform, SchemaSnapshot
from core.validation_rules import ValidationRules, default_rules
from transforms.timestamp_normalization import format_utc, is_parseable_timestamp

SNAPSHOT_COLLECTIONS = ("messages", "matches", "profiles")
_REQUIRED_CHECK_COLLECTIONS = ("messages", "matches")


@dataclass(frozen=True)
class RawSchemaValidation:
    """Outcome of the pre-parse structural gate."""

    valid: bool
    errors: tuple[ParseIssue, ...]
    warnings: tuple[ParseIssue, ...]
    snapshot: SchemaSnapshot


@dataclass(frozen=True)
class ValidationOutcome:
    """Issues found by the post-parse validation pass."""

    errors: tuple[ParseIssue, ...] = ()
    warnings: tuple[ParseIssue, ...] = ()


@dataclass(frozen=True)
class FieldChanges:
    """Fields added and removed for one entity between two snapshots."""

    added_fields: tuple[str, ...]
    removed_fields: tuple[str, ...]


@dataclass(frozen=True)
class SchemaDiff:
    """Schema drift between two snapshots of the same platform."""

    platform: Platform
    from_version: str
    to_version: str
    changes: Mapping[str, FieldChanges] = field(default_factory=dict)


def capture_schema_snapshot(
    raw_payload: object,
    platform: Platform,
    version: str,
    rules: ValidationRules | None = None,
) -> SchemaSnapshot:
    """Capture observed fields of a raw payload.

    Samples up to ten records per recognized collection, unions their
    keys, and diffs them against the platform's field contract.

    Args:
        raw_payload: Decoded raw export payload.
        platform: Source platform.
        version: Parser version capturing the snapshot.
        rules: Field contract; platform defaults when omitted.

    Returns:
        Snapshot, empty when the payload is not a mapping.
    """
    captured_at = format_utc(datetime.now(timezone.utc))
    if not isinstance(raw_payload, Mapping):
        return SchemaSnapshot(platform=platform, version=version, captured_at=captured_at)
    active_rules = rules or default_rules(platform)
    entities: dict[str, EntitySchema] = {}
    unknown_fields: dict[str, tuple[str, ...]] = {}
    for collection in SNAPSHOT_COLLECTIONS:
        records = raw_payload.get(collection)
        if not isinstance(records, list) or not records:
            continue
        entity_rules = active_rules.entity(collection)
        sample = records[:SCHEMA_SAMPLE_SIZE]
        observed = _observed_fields(sample)
        entities[collection] = EntitySchema(
            observed_fields=observed,
            sample_count=len(sample),
            required_fields=entity_rules.required_fields,
            missing_fields=tuple(
                name for name in entity_rules.required_fields if name not in observed
            ),
        )
        unknown = tuple(name for name in observed if name not in entity_rules.recognized_fields)
        if unknown:
            unknown_fields[collection] = unknown
    return SchemaSnapshot(
        platform=platform,
        version=version,
        captured_at=captured_at,
        entities=entities,
        unknown_fields=unknown_fields,
    )


def validate_raw_schema(
    raw_payload: object,
    platform: Platform,
    version: str,
    rules: ValidationRules | None = None,
) -> RawSchemaValidation:
    """Gate a raw payload before per-record parsing.

    Args:
        raw_payload: Decoded raw export payload.
        platform: Source platform.
        version: Parser version, recorded on the snapshot.
        rules: Field contract; platform defaults when omitted.

    Returns:
        Validation outcome; invalid when any critical issue was found.
    """
    snapshot = capture_schema_snapshot(raw_payload, platform, version, rules)
    if not isinstance(raw_payload, Mapping):
        error = create_error(
            "INVALID_DATA_TYPE", "Data must be a valid object", critical=True
        )
        return RawSchemaValidation(False, (error,), (), snapshot)
    errors: list[ParseIssue] = []
    messages = raw_payload.get("messages")
    matches = raw_payload.get("matches")
    if messages is None and matches is None:
        errors.append(
            create_error(
                "MISSING_DATA",
                'Data must contain at least "messages" or "matches" field. '
                "Your export appears to be empty or incomplete.",
                critical=True,
            )
        )
    if messages is not None and not isinstance(messages, list):
        errors.append(
            create_error(
                "INVALID_MESSAGES_TYPE", "Messages must be an array", critical=True, field="messages"
            )
        )
    if matches is not None and not isinstance(matches, list):
        errors.append(
            create_error(
                "INVALID_MATCHES_TYPE", "Matches must be an array", critical=True, field="matches"
            )
        )
    errors.extend(_missing_field_errors(snapshot))
    warnings = _unknown_field_warnings(snapshot)
    return RawSchemaValidation(not errors, tuple(errors), warnings, snapshot)


def unknown_field_warnings(snapshot: SchemaSnapshot) -> tuple[ParseIssue, ...]:
    """Build one ``UNKNOWN_FIELDS`` warning per entity with unknown fields."""
    return _unknown_field_warnings(snapshot)


def validate_parse_result(
    result: ParseResult,
    rules: ValidationRules | None = None,
) -> ValidationOutcome:
    """Run post-parse structural checks over unified entities.

    Args:
        result: Parse result to inspect.
        rules: Count thresholds; platform defaults when omitted.

    Returns:
        Errors and warnings; empty for failed or data-less results.
    """
    if not result.success or result.data is None or result.metadata is None:
        return ValidationOutcome()
    data = result.data
    platform = result.metadata.platform
    active_rules = rules or default_rules(platform)
    participant_ids = {participant.participant_id for participant in data.participants}
    errors: list[ParseIssue] = []
    warnings: list[ParseIssue] = list(
        _count_warnings(len(data.messages), len(data.matches), active_rules, platform)
    )

    seen_message_ids: set[str] = set()
    for line, message in enumerate(data.messages, 1):
        if message.message_id in seen_message_ids:
            errors.append(_duplicate_id_error("message", message.message_id, line))
        seen_message_ids.add(message.message_id)
        if not is_parseable_timestamp(message.sent_at):
            errors.append(_invalid_timestamp_error("message", "sent_at", message.sent_at, line))
        if not message.body.strip():
            warnings.append(
                create_warning(
                    "EMPTY_MESSAGE_BODY",
                    friendly_message("EMPTY_MESSAGE_BODY", {"line": line}),
                    line=line,
                    context={"message_id": message.message_id},
                )
            )
        if message.sender_id not in participant_ids:
            errors.append(
                _missing_participant_error("message", message.sender_id, "sender_id", line)
            )

    seen_match_ids: set[str] = set()
    for line, match in enumerate(data.matches, 1):
        if match.match_id in seen_match_ids:
            errors.append(_duplicate_id_error("match", match.match_id, line))
        seen_match_ids.add(match.match_id)
        if not is_parseable_timestamp(match.created_at):
            errors.append(_invalid_timestamp_error("match", "created_at", match.created_at, line))
        if match.closed_at and not is_parseable_timestamp(match.closed_at):
            errors.append(_invalid_timestamp_error("match", "closed_at", match.closed_at, line))
        for participant_id in match.participants:
            if participant_id not in participant_ids:
                errors.append(
                    _missing_participant_error("match", participant_id, "participants", line)
                )
    return ValidationOutcome(errors=tuple(errors), warnings=tuple(warnings))


def compare_schemas(old: SchemaSnapshot | None, new: SchemaSnapshot) -> SchemaDiff | None:
    """Compute schema drift between two snapshots.

    Args:
        old: Previously captured snapshot, if any.
        new: Freshly captured snapshot.

    Returns:
        Per-entity added and removed fields, or None when there is no
        baseline, the platforms differ, or nothing changed.
    """
    if old is None or old.platform != new.platform:
        return None
    changes: dict[str, FieldChanges] = {}
    entity_names = list(dict.fromkeys([*old.entities, *new.entities]))
    for entity_name in entity_names:
        old_fields = old.entities[entity_name].observed_fields if entity_name in old.entities else ()
        new_fields = new.entities[entity_name].observed_fields if entity_name in new.entities else ()
        added = tuple(name for name in new_fields if name not in old_fields)
        removed = tuple(name for name in old_fields if name not in new_fields)
        if added or removed:
            changes[entity_name] = FieldChanges(added_fields=added, removed_fields=removed)
    if not changes:
        return None
    return SchemaDiff(
        platform=new.platform,
        from_version=old.version,
        to_version=new.version,
        changes=changes,
    )


def _observed_fields(sample: list[object]) -> tuple[str, ...]:
    observed: dict[str, None] = {}
    for record in sample:
        if isinstance(record, Mapping):
            for key in record:
                observed.setdefault(str(key), None)
    return tuple(observed)


def _missing_field_errors(snapshot: SchemaSnapshot) -> list[ParseIssue]:
    errors: list[ParseIssue] = []
    for collection in _REQUIRED_CHECK_COLLECTIONS:
        entity = snapshot.entities.get(collection)
        if entity is None:
            continue
        for field_name in entity.missing_fields:
            context = {"entity": collection, "field": field_name}
            errors.append(
                create_error(
                    "MISSING_REQUIRED_FIELD",
                    friendly_message("MISSING_REQUIRED_FIELD", context),
                    critical=True,
                    field=field_name,
                    context=context,
                )
            )
    return errors


def _unknown_field_warnings(snapshot: SchemaSnapshot) -> tuple[ParseIssue, ...]:
    return tuple(
        create_warning(
            "UNKNOWN_FIELDS",
            f"Found {len(fields)} unknown field(s) in {entity}: {', '.join(fields)}. "
            "These will be captured in custom attribute metadata.",
            context={"entity": entity, "fields": list(fields)},
        )
        for entity, fields in snapshot.unknown_fields.items()
        if fields
    )


def _count_warnings(
    message_count: int,
    match_count: int,
    rules: ValidationRules,
    platform: Platform,
) -> list[ParseIssue]:
    warnings: list[ParseIssue] = []
    if 0 < message_count < rules.min_message_count:
        context = {"actual": message_count, "expected": rules.min_message_count, "platform": platform}
        warnings.append(
            create_warning(
                "LOW_MESSAGE_COUNT", friendly_message("LOW_MESSAGE_COUNT", context), context=context
            )
        )
    if message_count == 0:
        warnings.append(
            create_warning(
                "NO_MESSAGES", friendly_message("NO_MESSAGES"), context={"platform": platform}
            )
        )
    if 0 < match_count < rules.min_match_count:
        context = {"actual": match_count, "expected": rules.min_match_count, "platform": platform}
        warnings.append(
            create_warning(
                "LOW_MATCH_COUNT", friendly_message("LOW_MATCH_COUNT", context), context=context
            )
        )
    if match_count == 0:
        warnings.append(
            create_warning(
                "NO_MATCHES", friendly_message("NO_MATCHES"), context={"platform": platform}
            )
        )
    return warnings


def _duplicate_id_error(entity: str, entity_id: str, line: int) -> ParseIssue:
    return create_error(
        "DUPLICATE_ID",
        friendly_message("DUPLICATE_ID", {"entity": entity, "id": entity_id}),
        line=line,
        context={"entity": entity, "id": entity_id},
    )


def _invalid_timestamp_error(entity: str, field_name: str, value: str, line: int) -> ParseIssue:
    return create_error(
        "INVALID_TIMESTAMP",
        friendly_message("INVALID_TIMESTAMP", {"entity": entity, "line": line, "value": value}),
        field=field_name,
        line=line,
        context={"entity": entity, "value": value},
    )


def _missing_participant_error(
    entity: str,
    participant_id: str,
    field_name: str,
    line: int,
) -> ParseIssue:
    return create_error(
        "MISSING_PARTICIPANT",
        friendly_message("MISSING_PARTICIPANT", {"entity": entity, "participant_id": participant_id}),
        field=field_name,
        line=line,
        context={"entity": entity, "participant_id": participant_id},
    )
