"""Unit tests for entity payload conversion."""

from __future__ import annotations

from pathlib import Path

from core.issues import create_warning
from core.types import NormalizedMessage, Participant, Prompt, PromptContext, Reaction, RawRecord
from store.record_payload import (
    issue_to_payload,
    message_from_payload,
    message_to_payload,
    participant_from_payload,
    participant_to_payload,
    read_jsonl,
    write_jsonl,
)


def test_participant_payload_uses_json_types() -> None:
    """Tuples should serialize as lists, including tuple attributes."""
    participant = Participant(
        participant_id="p1",
        platform="hinge",
        traits=("Chef",),
        prompts=(Prompt(title="Q", response="A"),),
        attributes={"tags": ("a", "b"), "score": 1.5},
    )

    payload = participant_to_payload(participant)

    assert payload["traits"] == ["Chef"]
    assert payload["prompts"] == [{"title": "Q", "response": "A"}]
    assert payload["attributes"] == {"tags": ["a", "b"], "score": 1.5}
    assert participant_from_payload(payload) == participant


def test_message_payload_keeps_nested_values() -> None:
    """Reactions, prompt context, and raw records should convert back."""
    message = NormalizedMessage(
        message_id="1",
        match_id="m1",
        sender_id="user",
        sent_at="2023-01-01T00:00:00.000Z",
        body="hi",
        direction="user",
        reactions=(Reaction(emoji="heart", actor_id="p", sent_at="2023-01-01T00:01:00.000Z"),),
        delivery="read",
        prompt_context=PromptContext(title="Q"),
        raw=RawRecord(
            platform="hinge",
            entity="message",
            source="messages.csv",
            observed_at="t",
            data={"a": "1"},
        ),
    )

    restored = message_from_payload(message_to_payload(message))

    assert restored == message


def test_issue_payload_copies_context() -> None:
    """Issue payloads should be plain dictionaries."""
    issue = create_warning("UNKNOWN_FIELDS", "extra", context={"entity": "matches"})

    payload = issue_to_payload(issue)

    assert payload["severity"] == "warning"
    assert payload["context"] == {"entity": "matches"}
    assert payload["line"] is None


def test_jsonl_helpers_preserve_order(tmp_path: Path) -> None:
    """JSONL files should hold one record per line in input order."""
    records_path = tmp_path / "participants.jsonl"
    participants = [
        Participant(participant_id="b", platform="tinder"),
        Participant(participant_id="a", platform="tinder", name="Ana"),
    ]

    count = write_jsonl(records_path, participants, participant_to_payload)
    restored = read_jsonl(records_path, participant_from_payload)

    assert count == 2
    assert len(records_path.read_text(encoding="utf-8").splitlines()) == 2
    assert restored == participants
