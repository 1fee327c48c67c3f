"""Tinder JSON export parser.

This module maps a single Tinder data document onto the unified entity
model. It accepts flat and per-match nested message layouts, tolerates
case-variant top-level keys, and synthesizes matches from message groups
when the export carries no match list.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Mapping, cast

from core.constants import (
    MAX_VALID_AGE,
    MIN_VALID_AGE,
    PARSER_VERSION,
    TINDER_DEFAULT_GENDER_LABEL,
    TINDER_GENDER_LABELS,
    TINDER_KNOWN_PERSON_FIELDS,
    TINDER_UNKNOWN_USER_ID,
    TINDER_USER_SENTINELS,
)
from core.errors import AfterglowParseError
from core.issues import ParseIssue, create_error, create_warning
from core.types import (
    ContentValidation,
    EntityKind,
    Match,
    NormalizedMessage,
    Participant,
    ParsedDataset,
    ParseResult,
    Platform,
    RawRecord,
    Reaction,
)
from core.validation_rules import TINDER_RULES, ValidationRules
from parsers.attributes import extract_unknown_fields
from parsers.base import build_metadata, guarded_parse, now_iso
from transforms.schema_validation import validate_parse_result, validate_raw_schema
from transforms.timestamp_normalization import format_utc, parse_timestamp

_PARSE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


@dataclass
class _ParseState:
    """Mutable accumulator for one parse call."""

    source: str
    observed_at: str
    user_id: str
    participants: dict[str, Participant] = field(default_factory=dict)
    matches: list[Match] = field(default_factory=list)
    messages: list[NormalizedMessage] = field(default_factory=list)
    raw_records: list[RawRecord] = field(default_factory=list)
    warnings: list[ParseIssue] = field(default_factory=list)

    def raw(self, entity: EntityKind, data: object) -> RawRecord:
        record = RawRecord(
            platform="tinder",
            entity=entity,
            source=self.source,
            observed_at=self.observed_at,
            data=data,
        )
        self.raw_records.append(record)
        return record


class TinderParser:
    """Parser for Tinder ``data.json`` exports."""

    platform: Platform = "tinder"
    version = PARSER_VERSION

    def __init__(self, rules: ValidationRules | None = None) -> None:
        self._rules = rules or TINDER_RULES

    def parse(self, content: str, filename: str) -> ParseResult:
        """Parse a Tinder export document.

        Args:
            content: Decoded JSON text.
            filename: Source filename recorded on raw records.

        Returns:
            Parse result; failed with critical errors when unusable.
        """
        return guarded_parse(self.platform, filename, lambda: self._parse(content, filename))

    def validate(self, content: str) -> ContentValidation:
        """Check that content is a Tinder-shaped JSON object."""
        try:
            payload = _decode_json(content)
        except AfterglowParseError as error:
            return ContentValidation(valid=False, errors=(error.issue,))
        if not isinstance(payload, Mapping):
            issue = create_error(
                "INVALID_STRUCTURE", "Root element must be an object", critical=True
            )
            return ContentValidation(valid=False, errors=(issue,))
        normalized = _lowercase_keys(payload)
        errors: list[ParseIssue] = []
        messages = normalized.get("messages")
        matches = normalized.get("matches")
        if not messages and not matches:
            errors.append(
                create_error(
                    "MISSING_DATA",
                    'File must contain at least "messages" or "matches" field',
                    critical=True,
                )
            )
        if messages and not isinstance(messages, list):
            errors.append(
                create_error(
                    "INVALID_MESSAGES_TYPE", '"messages" field must be an array', critical=True
                )
            )
        if matches and not isinstance(matches, list):
            errors.append(
                create_error(
                    "INVALID_MATCHES_TYPE", '"matches" field must be an array', critical=True
                )
            )
        return ContentValidation(valid=not errors, errors=tuple(errors))

    def _parse(self, content: str, filename: str) -> ParseResult:
        payload = _decode_json(content)
        normalized = normalize_payload_shape(payload) if isinstance(payload, Mapping) else payload
        schema = validate_raw_schema(normalized, self.platform, self.version, self._rules)
        if not schema.valid:
            return ParseResult.failed(schema.errors, schema.warnings)
        normalized = cast(Mapping[str, object], normalized)

        user = normalized.get("user")
        user_id = TINDER_UNKNOWN_USER_ID
        if isinstance(user, Mapping) and user.get("_id"):
            user_id = str(user["_id"])
        state = _ParseState(source=filename, observed_at=now_iso(), user_id=user_id)
        self._add_user(state, user if isinstance(user, Mapping) else None)

        raw_matches = normalized.get("matches")
        raw_messages = normalized.get("messages") or []
        if isinstance(raw_matches, list):
            for line, raw_match in enumerate(raw_matches, 1):
                self._add_match(state, raw_match, line)
        else:
            self._synthesize_matches(state, raw_messages)
        for line, raw_message in enumerate(raw_messages, 1):
            self._add_message(state, raw_message, line)

        dataset = ParsedDataset(
            participants=tuple(state.participants.values()),
            matches=tuple(state.matches),
            messages=tuple(state.messages),
            raw_records=tuple(state.raw_records),
        )
        result = ParseResult(
            success=True,
            data=dataset,
            metadata=build_metadata(self.platform, self.version, dataset),
            schema_snapshot=schema.snapshot,
            warnings=schema.warnings + tuple(state.warnings),
        )
        outcome = validate_parse_result(result, self._rules)
        return replace(
            result,
            errors=result.errors + outcome.errors,
            warnings=result.warnings + outcome.warnings,
        )

    def _add_user(self, state: _ParseState, user: Mapping[str, object] | None) -> None:
        if user is None:
            state.participants[state.user_id] = Participant(
                participant_id=state.user_id, platform="tinder", is_user=True
            )
            return
        state.participants[state.user_id] = Participant(
            participant_id=state.user_id,
            platform="tinder",
            is_user=True,
            age=calculate_age(user.get("birth_date")),
            gender_label=gender_label(user.get("gender")),
            attributes=extract_unknown_fields(
                user, self._rules.entity("profiles").recognized_fields
            )
            or {},
            raw=state.raw("profile", dict(user)),
        )

    def _add_match(self, state: _ParseState, raw_match: object, line: int) -> None:
        try:
            if not isinstance(raw_match, Mapping):
                raise TypeError("match record must be an object")
            person = raw_match["person"]
            if not isinstance(person, Mapping):
                raise TypeError("match person must be an object")
            participant = _build_person(state, person)
            state.participants.setdefault(participant.participant_id, participant)
            state.matches.append(self._build_match(state, raw_match, participant.participant_id))
        except _PARSE_ERRORS as error:
            state.warnings.append(
                create_warning(
                    "MATCH_PARSE_FAILED",
                    f"Failed to parse match {line}: {error}",
                    field="matches",
                    line=line,
                )
            )

    def _build_match(
        self,
        state: _ParseState,
        raw_match: Mapping[str, object],
        counterpart_id: str,
    ) -> Match:
        closed = bool(raw_match.get("closed"))
        flags = {
            "is_super_like": bool(raw_match.get("is_super_like")),
            "is_boost_match": bool(raw_match.get("is_boost_match")),
            "is_tutorial": bool(raw_match.get("is_tutorial")),
        }
        unknown = extract_unknown_fields(
            raw_match, self._rules.entity("matches").recognized_fields
        )
        closed_at = raw_match.get("last_activity_date") if closed else None
        return Match(
            match_id=str(raw_match["_id"]),
            platform="tinder",
            created_at=_as_text(raw_match["created_date"]),
            status="closed" if closed else "active",
            participants=(state.user_id, counterpart_id),
            closed_at=_as_text(closed_at) if closed_at is not None else None,
            origin=match_origin(raw_match),
            attributes={**flags, **(unknown or {})},
            raw=state.raw("match", dict(raw_match)),
        )

    def _synthesize_matches(self, state: _ParseState, raw_messages: list[object]) -> None:
        groups: dict[str, list[Mapping[str, object]]] = {}
        for raw_message in raw_messages:
            if isinstance(raw_message, Mapping) and raw_message.get("match_id") is not None:
                groups.setdefault(str(raw_message["match_id"]), []).append(raw_message)
        for match_id, group in groups.items():
            counterpart_id = _counterpart_id(group, state.user_id)
            state.participants.setdefault(
                counterpart_id, Participant(participant_id=counterpart_id, platform="tinder")
            )
            state.matches.append(
                Match(
                    match_id=match_id,
                    platform="tinder",
                    created_at=_earliest_timestamp(group),
                    status="active",
                    participants=(state.user_id, counterpart_id),
                    origin="like",
                )
            )

    def _add_message(self, state: _ParseState, raw_message: object, line: int) -> None:
        try:
            if not isinstance(raw_message, Mapping):
                raise TypeError("message record must be an object")
            sender_id = _resolve_user(raw_message["from"], state.user_id)
            body = raw_message.get("message")
            state.messages.append(
                NormalizedMessage(
                    message_id=str(raw_message["_id"]),
                    match_id=str(raw_message["match_id"]),
                    sender_id=sender_id,
                    sent_at=_as_text(raw_message["sent_date"]),
                    body="" if body is None else str(body),
                    direction="user" if sender_id == state.user_id else "match",
                    reactions=_build_reactions(raw_message.get("reactions"), state.user_id),
                    attributes=extract_unknown_fields(
                        raw_message, self._rules.entity("messages").recognized_fields
                    )
                    or {},
                    raw=state.raw("message", dict(raw_message)),
                )
            )
        except _PARSE_ERRORS as error:
            message_id = raw_message.get("_id") if isinstance(raw_message, Mapping) else None
            state.warnings.append(
                create_warning(
                    "MESSAGE_PARSE_FAILED",
                    f"Failed to parse message {message_id or line}: {error}",
                    field="messages",
                    line=line,
                    context={"message_id": message_id},
                )
            )


def normalize_payload_shape(payload: Mapping[str, object]) -> dict[str, object]:
    """Lowercase top-level keys and flatten nested message groups.

    Groups look like ``{"match_id": ..., "messages": [...]}``. Flattened
    messages inherit the group's ``match_id`` and receive a synthesized
    ``_id`` of ``{match_id}_msg_{index}`` when they carry none.

    Args:
        payload: Decoded Tinder document.

    Returns:
        Shallow copy with a flat ``messages`` list and a ``profiles``
        collection holding the user record for schema capture.
    """
    normalized = _lowercase_keys(payload)
    messages = normalized.get("messages")
    if isinstance(messages, list):
        normalized["messages"] = _flatten_messages(messages)
    user = normalized.get("user")
    if isinstance(user, Mapping):
        normalized["profiles"] = [user]
    return normalized


def calculate_age(birth_date: object, today: datetime | None = None) -> int | None:
    """Derive an age in years, None when outside the plausible range."""
    born = parse_timestamp(birth_date) if isinstance(birth_date, (str, int, float)) else None
    if born is None:
        return None
    reference = today or datetime.now(timezone.utc)
    age = reference.year - born.year
    if (reference.month, reference.day) < (born.month, born.day):
        age -= 1
    return age if MIN_VALID_AGE < age < MAX_VALID_AGE else None


def gender_label(code: object) -> str | None:
    """Map a Tinder gender code to a label."""
    if code is None:
        return None
    if isinstance(code, int) and not isinstance(code, bool):
        return TINDER_GENDER_LABELS.get(code, TINDER_DEFAULT_GENDER_LABEL)
    return TINDER_DEFAULT_GENDER_LABEL


def match_origin(raw_match: Mapping[str, object]) -> str:
    """Resolve match origin with super-like over boost over like."""
    if raw_match.get("is_super_like"):
        return "super-like"
    if raw_match.get("is_boost_match"):
        return "boost"
    return "like"


def extract_traits(person: Mapping[str, object]) -> tuple[str, ...]:
    """Collect job titles, company names and school names in order."""
    traits: list[str] = []
    jobs = person.get("jobs")
    if isinstance(jobs, list):
        for job in jobs:
            if isinstance(job, Mapping):
                traits.extend(_nested_names(job, ("title", "company")))
    schools = person.get("schools")
    if isinstance(schools, list):
        for school in schools:
            if isinstance(school, Mapping) and isinstance(school.get("name"), str):
                traits.append(school["name"])
    return tuple(dict.fromkeys(trait for trait in traits if trait))


def _build_person(state: _ParseState, person: Mapping[str, object]) -> Participant:
    name = person.get("name")
    return Participant(
        participant_id=str(person["_id"]),
        platform="tinder",
        name=name if isinstance(name, str) else None,
        age=calculate_age(person.get("birth_date")),
        gender_label=gender_label(person.get("gender")),
        traits=extract_traits(person),
        attributes=extract_unknown_fields(person, TINDER_KNOWN_PERSON_FIELDS) or {},
        raw=state.raw("profile", dict(person)),
    )


def _build_reactions(raw_reactions: object, user_id: str) -> tuple[Reaction, ...]:
    if not isinstance(raw_reactions, list):
        return ()
    return tuple(
        Reaction(
            emoji=str(reaction.get("emoji", "")),
            actor_id=_resolve_user(reaction.get("actor", ""), user_id),
            sent_at=_as_text(reaction.get("sent_date", "")),
        )
        for reaction in raw_reactions
        if isinstance(reaction, Mapping)
    )


def _nested_names(record: Mapping[str, object], keys: tuple[str, ...]) -> list[str]:
    names: list[str] = []
    for key in keys:
        nested = record.get(key)
        if isinstance(nested, Mapping) and isinstance(nested.get("name"), str):
            names.append(nested["name"])
    return names


def _flatten_messages(messages: list[object]) -> list[object]:
    flattened: list[object] = []
    for entry in messages:
        if isinstance(entry, Mapping) and isinstance(entry.get("messages"), list):
            match_id = entry.get("match_id")
            for index, nested in enumerate(entry["messages"]):
                if not isinstance(nested, Mapping):
                    flattened.append(nested)
                    continue
                record = dict(nested)
                record.setdefault("match_id", match_id)
                record.setdefault("_id", f"{record['match_id']}_msg_{index}")
                flattened.append(record)
        else:
            flattened.append(entry)
    return flattened


def _counterpart_id(group: list[Mapping[str, object]], user_id: str) -> str:
    for raw_message in group:
        for key in ("to", "from"):
            candidate = raw_message.get(key)
            if candidate is None:
                continue
            resolved = _resolve_user(candidate, user_id)
            if resolved != user_id:
                return resolved
    return f"{group[0]['match_id']}_counterpart"


def _earliest_timestamp(group: list[Mapping[str, object]]) -> str:
    instants = [
        parsed
        for parsed in (parse_timestamp(_as_text(item.get("sent_date", ""))) for item in group)
        if parsed is not None
    ]
    if instants:
        return format_utc(min(instants))
    return _as_text(group[0].get("sent_date", ""))


def _resolve_user(value: object, user_id: str) -> str:
    text = _as_text(value)
    if text.strip().lower() in TINDER_USER_SENTINELS:
        return user_id
    return text


def _as_text(value: object) -> str:
    if value is None:
        return ""
    return str(value)


def _lowercase_keys(payload: Mapping[str, object]) -> dict[str, object]:
    normalized: dict[str, object] = {}
    for key, value in payload.items():
        normalized.setdefault(str(key).lower(), value)
    return normalized


def _decode_json(content: str) -> object:
    try:
        return json.loads(content)
    except ValueError as error:
        raise AfterglowParseError(
            create_error("INVALID_JSON", f"Failed to parse JSON: {error}", critical=True)
        ) from error
