"""Shared JSON payload conversion for unified entities.

This module centralizes entity serialization for batch persistence.
Entity converters round-trip: ``*_from_payload`` rebuilds exactly what
``*_to_payload`` wrote.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, TypeVar

from core.issues import ParseIssue
from core.types import (
    AttributeValue,
    Match,
    NormalizedMessage,
    ParseMetadata,
    Participant,
    Prompt,
    PromptContext,
    RawRecord,
    Reaction,
    SchemaSnapshot,
)

EntityT = TypeVar("EntityT")


def raw_record_to_payload(record: RawRecord) -> dict[str, object]:
    """Serialize a raw audit record."""
    return {
        "platform": record.platform,
        "entity": record.entity,
        "source": record.source,
        "observed_at": record.observed_at,
        "data": record.data,
    }


def raw_record_from_payload(payload: Mapping[str, Any]) -> RawRecord:
    """Deserialize a raw audit record."""
    return RawRecord(
        platform=payload["platform"],
        entity=payload["entity"],
        source=str(payload["source"]),
        observed_at=str(payload["observed_at"]),
        data=payload.get("data"),
    )


def participant_to_payload(participant: Participant) -> dict[str, object]:
    """Serialize a participant.

    Args:
        participant: Participant instance.

    Returns:
        Dictionary payload for JSON encoding.
    """
    return {
        "participant_id": participant.participant_id,
        "platform": participant.platform,
        "is_user": participant.is_user,
        "name": participant.name,
        "age": participant.age,
        "gender_label": participant.gender_label,
        "location": participant.location,
        "traits": list(participant.traits),
        "prompts": [asdict(prompt) for prompt in participant.prompts],
        "attributes": _attributes_to_payload(participant.attributes),
        "raw": _optional_raw_to_payload(participant.raw),
    }


def participant_from_payload(payload: Mapping[str, Any]) -> Participant:
    """Deserialize a participant.

    Args:
        payload: Serialized participant payload.

    Returns:
        Parsed participant.
    """
    return Participant(
        participant_id=str(payload["participant_id"]),
        platform=payload["platform"],
        is_user=bool(payload.get("is_user", False)),
        name=payload.get("name"),
        age=payload.get("age"),
        gender_label=payload.get("gender_label"),
        location=payload.get("location"),
        traits=tuple(payload.get("traits", ())),
        prompts=tuple(
            Prompt(title=str(item["title"]), response=str(item["response"]))
            for item in payload.get("prompts", ())
        ),
        attributes=_attributes_from_payload(payload.get("attributes", {})),
        raw=_optional_raw_from_payload(payload.get("raw")),
    )


def match_to_payload(match: Match) -> dict[str, object]:
    """Serialize a match."""
    return {
        "match_id": match.match_id,
        "platform": match.platform,
        "created_at": match.created_at,
        "status": match.status,
        "participants": list(match.participants),
        "closed_at": match.closed_at,
        "origin": match.origin,
        "attributes": _attributes_to_payload(match.attributes),
        "raw": _optional_raw_to_payload(match.raw),
    }


def match_from_payload(payload: Mapping[str, Any]) -> Match:
    """Deserialize a match."""
    user_id, counterpart_id = payload["participants"]
    return Match(
        match_id=str(payload["match_id"]),
        platform=payload["platform"],
        created_at=str(payload["created_at"]),
        status=payload["status"],
        participants=(str(user_id), str(counterpart_id)),
        closed_at=payload.get("closed_at"),
        origin=payload.get("origin"),
        attributes=_attributes_from_payload(payload.get("attributes", {})),
        raw=_optional_raw_from_payload(payload.get("raw")),
    )


def message_to_payload(message: NormalizedMessage) -> dict[str, object]:
    """Serialize a normalized message."""
    prompt_context = message.prompt_context
    return {
        "message_id": message.message_id,
        "match_id": message.match_id,
        "sender_id": message.sender_id,
        "sent_at": message.sent_at,
        "body": message.body,
        "direction": message.direction,
        "reactions": [asdict(reaction) for reaction in message.reactions],
        "delivery": message.delivery,
        "prompt_context": asdict(prompt_context) if prompt_context is not None else None,
        "attributes": _attributes_to_payload(message.attributes),
        "raw": _optional_raw_to_payload(message.raw),
    }


def message_from_payload(payload: Mapping[str, Any]) -> NormalizedMessage:
    """Deserialize a normalized message."""
    prompt_payload = payload.get("prompt_context")
    return NormalizedMessage(
        message_id=str(payload["message_id"]),
        match_id=str(payload["match_id"]),
        sender_id=str(payload["sender_id"]),
        sent_at=str(payload["sent_at"]),
        body=str(payload.get("body", "")),
        direction=payload["direction"],
        reactions=tuple(
            Reaction(
                emoji=str(item["emoji"]),
                actor_id=str(item["actor_id"]),
                sent_at=str(item["sent_at"]),
            )
            for item in payload.get("reactions", ())
        ),
        delivery=payload.get("delivery"),
        prompt_context=(
            PromptContext(
                title=prompt_payload.get("title"),
                response=prompt_payload.get("response"),
            )
            if isinstance(prompt_payload, Mapping)
            else None
        ),
        attributes=_attributes_from_payload(payload.get("attributes", {})),
        raw=_optional_raw_from_payload(payload.get("raw")),
    )


def issue_to_payload(issue: ParseIssue) -> dict[str, object]:
    """Serialize a parse issue for the batch manifest."""
    return {
        "code": issue.code,
        "severity": issue.severity,
        "message": issue.message,
        "field": issue.field,
        "line": issue.line,
        "context": dict(issue.context),
    }


def metadata_to_payload(metadata: ParseMetadata) -> dict[str, object]:
    """Serialize parse metadata for the batch manifest."""
    return asdict(metadata)


def snapshot_to_payload(snapshot: SchemaSnapshot) -> dict[str, object]:
    """Serialize a schema snapshot for the batch manifest."""
    return {
        "platform": snapshot.platform,
        "version": snapshot.version,
        "captured_at": snapshot.captured_at,
        "entities": {
            name: {
                "observed_fields": list(entity.observed_fields),
                "sample_count": entity.sample_count,
                "required_fields": list(entity.required_fields),
                "missing_fields": list(entity.missing_fields),
            }
            for name, entity in snapshot.entities.items()
        },
        "unknown_fields": {name: list(fields) for name, fields in snapshot.unknown_fields.items()},
    }


def write_jsonl(
    records_path: Path,
    records: Iterable[EntityT],
    to_payload: Callable[[EntityT], dict[str, object]],
) -> int:
    """Write entities to a JSONL file.

    Args:
        records_path: Output JSONL file path.
        records: Entities to serialize.
        to_payload: Entity serializer.

    Returns:
        Number of lines written.
    """
    lines = [
        json.dumps(to_payload(record), sort_keys=True, ensure_ascii=False, default=str)
        for record in records
    ]
    records_path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    return len(lines)


def read_jsonl(
    records_path: Path,
    from_payload: Callable[[Mapping[str, Any]], EntityT],
) -> list[EntityT]:
    """Read entities from a JSONL file.

    Args:
        records_path: Input JSONL file path.
        from_payload: Entity deserializer.

    Returns:
        Parsed entities in file order.
    """
    records: list[EntityT] = []
    for line in records_path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        records.append(from_payload(json.loads(line)))
    return records


def _attributes_to_payload(attributes: Mapping[str, AttributeValue]) -> dict[str, object]:
    return {
        key: list(value) if isinstance(value, tuple) else value
        for key, value in attributes.items()
    }


def _attributes_from_payload(payload: Mapping[str, Any]) -> dict[str, AttributeValue]:
    return {
        key: tuple(value) if isinstance(value, list) else value for key, value in payload.items()
    }


def _optional_raw_to_payload(record: RawRecord | None) -> dict[str, object] | None:
    return raw_record_to_payload(record) if record is not None else None


def _optional_raw_from_payload(payload: object) -> RawRecord | None:
    return raw_record_from_payload(payload) if isinstance(payload, Mapping) else None
