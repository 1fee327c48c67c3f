"""Hinge export parser.

This module handles both Hinge export layouts: the legacy pair of CSV
files (``matches.csv`` and ``messages.csv``) and the modern JSON export
with one record per match and an embedded chat list. Hinge exports never
carry the user's id, so the user is always the constant ``user``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import PurePosixPath
from typing import Mapping, Sequence, cast

from core.constants import (
    HINGE_PROMPT_PLACEHOLDER,
    HINGE_REQUIRED_MATCH_COLUMNS,
    HINGE_REQUIRED_MESSAGE_COLUMNS,
    HINGE_USER_ID,
    PARSER_VERSION,
)
from core.errors import AfterglowParseError
from core.issues import IssueCode, ParseIssue, create_error, create_warning
from core.logging_config import get_logger
from core.types import (
    SUPPORTED_DELIVERY_STATUSES,
    SUPPORTED_MATCH_STATUSES,
    ContentValidation,
    DeliveryStatus,
    EntityKind,
    Match,
    MatchStatus,
    NormalizedMessage,
    Participant,
    ParsedDataset,
    ParseResult,
    Platform,
    PromptContext,
    RawRecord,
    SchemaSnapshot,
)
from core.validation_rules import HINGE_CSV_RULES, HINGE_JSON_RULES, ValidationRules
from parsers.attributes import extract_unknown_fields
from parsers.base import build_metadata, guarded_parse, now_iso
from parsers.csv_reader import row_to_record, tokenize_csv
from transforms.schema_validation import (
    capture_schema_snapshot,
    unknown_field_warnings,
    validate_parse_result,
)

_LOGGER = get_logger(__name__)
_PARSE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


@dataclass
class _ParseState:
    """Mutable accumulator for one file."""

    source: str
    observed_at: str
    participants: dict[str, Participant] = field(default_factory=dict)
    matches: list[Match] = field(default_factory=list)
    messages: list[NormalizedMessage] = field(default_factory=list)
    raw_records: list[RawRecord] = field(default_factory=list)
    warnings: list[ParseIssue] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.participants[HINGE_USER_ID] = Participant(
            participant_id=HINGE_USER_ID, platform="hinge", is_user=True
        )

    def raw(self, entity: EntityKind, data: object) -> RawRecord:
        record = RawRecord(
            platform="hinge",
            entity=entity,
            source=self.source,
            observed_at=self.observed_at,
            data=data,
        )
        self.raw_records.append(record)
        return record

    def skip_row(self, code: IssueCode, line: int, reason: str) -> None:
        _LOGGER.info("row_skipped", filename=self.source, line=line, code=code)
        self.warnings.append(
            create_warning(code, f"Skipped row on line {line}: {reason}", line=line)
        )

    def dataset(self) -> ParsedDataset:
        return ParsedDataset(
            participants=tuple(self.participants.values()),
            matches=tuple(self.matches),
            messages=tuple(self.messages),
            raw_records=tuple(self.raw_records),
        )


class HingeParser:
    """Parser for Hinge CSV and JSON exports."""

    platform: Platform = "hinge"
    version = PARSER_VERSION

    def __init__(
        self,
        rules: ValidationRules | None = None,
        json_rules: ValidationRules | None = None,
    ) -> None:
        self._rules = rules or HINGE_CSV_RULES
        self._json_rules = json_rules or HINGE_JSON_RULES

    def parse(self, content: str, filename: str) -> ParseResult:
        """Parse one Hinge export file.

        JSON exports are detected by a ``.json`` suffix or by content that
        starts with ``[`` or ``{``. CSV files are dispatched on whether the
        filename mentions ``match`` or ``message``.

        Args:
            content: Decoded file text.
            filename: Source filename.

        Returns:
            Parse result; failed with critical errors when unusable.
        """
        return guarded_parse(self.platform, filename, lambda: self._parse(content, filename))

    def validate(self, content: str) -> ContentValidation:
        """Check that content is a non-empty JSON list or a CSV with data rows."""
        if not content.strip():
            issue = create_error("EMPTY_FILE", "Export file is empty", critical=True)
            return ContentValidation(valid=False, errors=(issue,))
        if is_json_content(content):
            try:
                _decode_match_list(content)
            except AfterglowParseError as error:
                return ContentValidation(valid=False, errors=(error.issue,))
            return ContentValidation(valid=True)
        if len(tokenize_csv(content)) < 2:
            issue = create_error(
                "INSUFFICIENT_DATA",
                "CSV file must contain at least a header row and one data row",
                critical=True,
            )
            return ContentValidation(valid=False, errors=(issue,))
        return ContentValidation(valid=True)

    def _parse(self, content: str, filename: str) -> ParseResult:
        if filename.lower().endswith(".json") or is_json_content(content):
            return self._parse_json(content, filename)
        lowered = filename.lower()
        is_matches_file = "match" in lowered
        if not is_matches_file and "message" not in lowered:
            raise AfterglowParseError(
                create_error(
                    "UNKNOWN_FILE_TYPE",
                    "Cannot determine if file contains matches or messages",
                    critical=True,
                    context={"filename": filename},
                )
            )
        validation = self.validate(content)
        if not validation.valid:
            return ParseResult.failed(validation.errors)
        rows = tokenize_csv(content)
        required_columns = (
            HINGE_REQUIRED_MATCH_COLUMNS if is_matches_file else HINGE_REQUIRED_MESSAGE_COLUMNS
        )
        header = canonical_header(rows[0], required_columns)
        records = [row_to_record(header, row) for row in rows[1:]]
        if is_matches_file:
            return self._parse_matches(header, records, filename)
        return self._parse_messages(header, records, filename)

    def _parse_matches(
        self,
        header: Sequence[str],
        records: list[dict[str, str]],
        filename: str,
    ) -> ParseResult:
        missing = [column for column in HINGE_REQUIRED_MATCH_COLUMNS if column not in header]
        if missing:
            raise AfterglowParseError(
                create_error(
                    "INVALID_HEADER",
                    f"Matches file must contain: {', '.join(HINGE_REQUIRED_MATCH_COLUMNS)}",
                    critical=True,
                    context={"missing": missing},
                )
            )
        state = _ParseState(source=filename, observed_at=now_iso())
        known_fields = self._rules.entity("matches").recognized_fields
        for line, record in enumerate(records, 2):
            if not record.get("matched_at"):
                state.skip_row("MATCH_PARSE_FAILED", line, "missing matched_at")
                continue
            try:
                state.matches.append(self._build_match(state, record, line, known_fields))
            except _PARSE_ERRORS as error:
                state.skip_row("MATCH_PARSE_FAILED", line, str(error))
        snapshot = capture_schema_snapshot(
            {"matches": records}, self.platform, self.version, self._rules
        )
        return self._finish(state, snapshot, self._rules)

    def _build_match(
        self,
        state: _ParseState,
        record: Mapping[str, str],
        line: int,
        known_fields: frozenset[str],
    ) -> Match:
        match_id = record.get("match_id") or record.get("conversation_id") or f"match_{line}"
        person_id = counterpart_id(match_id)
        _upsert_counterpart(
            state,
            Participant(
                participant_id=person_id,
                platform="hinge",
                name=record.get("profile_name") or None,
                age=_parse_age(record.get("profile_age")),
                location=record.get("profile_location") or None,
            ),
        )
        attributes: dict[str, object] = {}
        if record.get("conversation_id"):
            attributes["conversation_id"] = record["conversation_id"]
        attributes["icebreaker_sent"] = record.get("icebreaker_sent", "").lower() == "true"
        attributes.update(extract_unknown_fields(record, known_fields) or {})
        return Match(
            match_id=match_id,
            platform="hinge",
            created_at=record["matched_at"],
            status=match_status(record.get("match_status")),
            participants=(HINGE_USER_ID, person_id),
            origin=record.get("match_type") or record.get("match_origin") or None,
            attributes=attributes,
            raw=state.raw("match", dict(record)),
        )

    def _parse_messages(
        self,
        header: Sequence[str],
        records: list[dict[str, str]],
        filename: str,
    ) -> ParseResult:
        if not any(column in header for column in HINGE_REQUIRED_MESSAGE_COLUMNS):
            raise AfterglowParseError(
                create_error(
                    "INVALID_HEADER",
                    "Messages file must contain timestamp and message text fields",
                    critical=True,
                )
            )
        state = _ParseState(source=filename, observed_at=now_iso())
        known_fields = self._rules.entity("messages").recognized_fields
        stem = PurePosixPath(filename).stem
        for line, record in enumerate(records, 2):
            if not record.get("sent_at"):
                state.skip_row("MESSAGE_PARSE_FAILED", line, "missing sent_at")
                continue
            try:
                state.messages.append(
                    self._build_message(state, record, f"{stem}_msg_{line}", known_fields)
                )
            except _PARSE_ERRORS as error:
                state.skip_row("MESSAGE_PARSE_FAILED", line, str(error))
        snapshot = capture_schema_snapshot(
            {"messages": records}, self.platform, self.version, self._rules
        )
        return self._finish(state, snapshot, self._rules)

    def _build_message(
        self,
        state: _ParseState,
        record: Mapping[str, str],
        message_id: str,
        known_fields: frozenset[str],
    ) -> NormalizedMessage:
        match_id = record.get("match_id") or record.get("conversation_id") or "unknown_match"
        is_user_message = record.get("sender_role", "").lower() == "user"
        person_id = counterpart_id(match_id)
        counterpart_name = record.get("recipient_name" if is_user_message else "sender_name")
        _upsert_counterpart(
            state,
            Participant(participant_id=person_id, platform="hinge", name=counterpart_name or None),
        )
        return NormalizedMessage(
            message_id=message_id,
            match_id=match_id,
            sender_id=HINGE_USER_ID if is_user_message else person_id,
            sent_at=record["sent_at"],
            body=record.get("message_text", ""),
            direction="user" if is_user_message else "match",
            delivery=delivery_status(record.get("delivery_status")),
            prompt_context=prompt_context(record),
            attributes=extract_unknown_fields(record, known_fields) or {},
            raw=state.raw("message", dict(record)),
        )

    def _parse_json(self, content: str, filename: str) -> ParseResult:
        match_records = _decode_match_list(content)
        state = _ParseState(source=filename, observed_at=now_iso())
        known_match_fields = self._json_rules.entity("matches").recognized_fields
        known_chat_fields = self._json_rules.entity("messages").recognized_fields
        chats: list[object] = []
        for index, record in enumerate(match_records):
            if not isinstance(record, Mapping):
                state.skip_row("MATCH_PARSE_FAILED", index + 1, "match record must be an object")
                continue
            match_id = f"match_{index}"
            person_id = f"participant_{index}"
            raw = state.raw("match", dict(record))
            state.participants.setdefault(
                person_id, Participant(participant_id=person_id, platform="hinge")
            )
            created_at = _first_timestamp(record, "match") or _first_timestamp(record, "like")
            if created_at:
                state.matches.append(
                    Match(
                        match_id=match_id,
                        platform="hinge",
                        created_at=created_at,
                        status="active",
                        participants=(HINGE_USER_ID, person_id),
                        attributes=extract_unknown_fields(record, known_match_fields) or {},
                        raw=raw,
                    )
                )
            record_chats = record.get("chats")
            if not isinstance(record_chats, list):
                continue
            chats.extend(record_chats)
            for chat_index, chat in enumerate(record_chats):
                if not isinstance(chat, Mapping) or not chat.get("body") or not chat.get("timestamp"):
                    continue
                state.messages.append(
                    NormalizedMessage(
                        message_id=f"{match_id}_msg_{chat_index}",
                        match_id=match_id,
                        sender_id=HINGE_USER_ID,
                        sent_at=str(chat["timestamp"]),
                        body=str(chat["body"]),
                        direction="user",
                        attributes=extract_unknown_fields(chat, known_chat_fields) or {},
                        raw=state.raw("message", dict(chat)),
                    )
                )
        snapshot = capture_schema_snapshot(
            {"matches": match_records, "messages": chats},
            self.platform,
            self.version,
            self._json_rules,
        )
        return self._finish(state, snapshot, self._json_rules)

    def _finish(
        self,
        state: _ParseState,
        snapshot: SchemaSnapshot,
        rules: ValidationRules,
    ) -> ParseResult:
        dataset = state.dataset()
        result = ParseResult(
            success=True,
            data=dataset,
            metadata=build_metadata(self.platform, self.version, dataset),
            schema_snapshot=snapshot,
            warnings=unknown_field_warnings(snapshot) + tuple(state.warnings),
        )
        outcome = validate_parse_result(result, rules)
        return replace(
            result,
            errors=result.errors + outcome.errors,
            warnings=result.warnings + outcome.warnings,
        )


def is_json_content(content: str) -> bool:
    """Return whether text looks like a JSON document."""
    return content.lstrip().startswith(("[", "{"))


def canonical_header(header: Sequence[str], required_columns: Sequence[str]) -> list[str]:
    """Lowercase header cells and map look-alike columns onto required names.

    A column that merely contains a required name (``Match_ID (hashed)``)
    is renamed to that name when no exact column exists. Only the required
    columns of the file being parsed are considered, so unrelated columns
    keep their own names.
    """
    canonical = [cell.strip().lower() for cell in header]
    for name in required_columns:
        if name in canonical:
            continue
        for position, column in enumerate(canonical):
            if name in column:
                canonical[position] = name
                break
    return canonical


def counterpart_id(match_id: str) -> str:
    """Return the participant id of the other person in a match."""
    return f"match_{match_id}_person"


def match_status(raw_status: str | None) -> MatchStatus:
    """Map a ``match_status`` cell onto a match status."""
    lowered = (raw_status or "").strip().lower()
    if lowered in SUPPORTED_MATCH_STATUSES:
        return cast(MatchStatus, lowered)
    return "active"


def delivery_status(raw_status: str | None) -> DeliveryStatus:
    """Map a ``delivery_status`` cell onto a delivery state."""
    lowered = (raw_status or "").strip().lower()
    if lowered in SUPPORTED_DELIVERY_STATUSES:
        return cast(DeliveryStatus, lowered)
    return "unknown"


def prompt_context(record: Mapping[str, str]) -> PromptContext | None:
    """Build prompt context, ignoring the literal ``None`` placeholder."""
    title = _prompt_value(record.get("prompt_title"))
    response = _prompt_value(record.get("prompt_response"))
    if title is None and response is None:
        return None
    return PromptContext(title=title, response=response)


def _prompt_value(value: str | None) -> str | None:
    if not value or value == HINGE_PROMPT_PLACEHOLDER:
        return None
    return value


def _upsert_counterpart(state: _ParseState, participant: Participant) -> None:
    existing = state.participants.get(participant.participant_id)
    if existing is None:
        state.participants[participant.participant_id] = participant
    elif existing.name is None and participant.name is not None:
        state.participants[participant.participant_id] = replace(existing, name=participant.name)


def _parse_age(raw_age: str | None) -> int | None:
    if not raw_age:
        return None
    try:
        return int(raw_age)
    except ValueError:
        return None


def _first_timestamp(record: Mapping[str, object], key: str) -> str | None:
    events = record.get(key)
    if not isinstance(events, list) or not events:
        return None
    first = events[0]
    if not isinstance(first, Mapping) or not first.get("timestamp"):
        return None
    return str(first["timestamp"])


def _decode_match_list(content: str) -> list[object]:
    try:
        payload = json.loads(content)
    except ValueError as error:
        raise AfterglowParseError(
            create_error("INVALID_JSON", f"Failed to parse JSON: {error}", critical=True)
        ) from error
    if not isinstance(payload, list):
        raise AfterglowParseError(
            create_error(
                "INVALID_JSON", "Hinge JSON export must be an array of matches", critical=True
            )
        )
    return payload
