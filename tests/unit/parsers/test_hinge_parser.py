"""Unit tests for the Hinge export parser."""

from __future__ import annotations

from dataclasses import replace

from core.types import ParsedDataset, ParseResult, RawRecord
from parsers.hinge_parser import (
    HingeParser,
    canonical_header,
    delivery_status,
    match_status,
    prompt_context,
)
from tests.fixture_paths import fixture_path, fixture_text


def _parse_fixture(relative_path: str):
    return HingeParser().parse(fixture_text(relative_path), fixture_path(relative_path).name)


def _unstamped(raw: RawRecord | None) -> RawRecord | None:
    return None if raw is None else replace(raw, observed_at="")


def _without_stamps(result: ParseResult) -> ParsedDataset:
    assert result.data is not None
    data = result.data
    return ParsedDataset(
        participants=tuple(replace(item, raw=_unstamped(item.raw)) for item in data.participants),
        matches=tuple(replace(item, raw=_unstamped(item.raw)) for item in data.matches),
        messages=tuple(replace(item, raw=_unstamped(item.raw)) for item in data.messages),
        raw_records=tuple(replace(item, observed_at="") for item in data.raw_records),
    )


def test_parse_matches_csv_builds_matches_and_people() -> None:
    """Matches CSV rows should become matches with counterpart participants."""
    result = _parse_fixture("hinge/matches.csv")

    assert result.success is True and result.data is not None
    first, second = result.data.matches
    assert first.match_id == "h1"
    assert first.participants == ("user", "match_h1_person")
    assert first.origin == "like"
    assert first.attributes == {"icebreaker_sent": True, "favorite_color": "blue"}
    assert second.status == "unmatched"
    assert second.origin == "rose"
    participants = {item.participant_id: item for item in result.data.participants}
    assert participants["match_h1_person"].age == 29
    assert participants["match_h1_person"].location == "Brooklyn"
    assert participants["match_h2_person"].name == "Dana, Jr."
    assert participants["user"].is_user is True


def test_parse_matches_csv_skips_rows_without_timestamp() -> None:
    """A row without matched_at should be skipped with a line-numbered warning."""
    result = _parse_fixture("hinge/matches.csv")

    codes = [issue.code for issue in result.warnings]
    assert codes == ["UNKNOWN_FIELDS", "MATCH_PARSE_FAILED", "NO_MESSAGES"]
    assert result.warnings[1].line == 4
    assert result.errors == ()


def test_parse_messages_csv_maps_rows() -> None:
    """Message rows should keep escaped quotes, delivery, and prompt context."""
    result = _parse_fixture("hinge/messages.csv")

    assert result.success is True and result.data is not None
    first, second, third = result.data.messages
    assert [first.message_id, second.message_id, third.message_id] == [
        "messages_msg_2",
        "messages_msg_3",
        "messages_msg_4",
    ]
    assert first.direction == "user" and first.sender_id == "user"
    assert first.delivery == "read"
    assert first.prompt_context is None
    assert second.body == 'Great, thanks! "Quoted"'
    assert second.sender_id == "match_h1_person"
    assert second.prompt_context is not None
    assert second.prompt_context.title == "Two truths and a lie"
    assert third.match_id == "h2"


def test_parse_messages_csv_names_counterparts() -> None:
    """Counterparts should be named from recipient or sender columns."""
    result = _parse_fixture("hinge/messages.csv")

    assert result.data is not None
    names = {item.participant_id: item.name for item in result.data.participants}
    assert names == {"user": None, "match_h1_person": "Carla", "match_h2_person": "Dana, Jr."}
    assert [issue.code for issue in result.warnings] == ["NO_MATCHES"]


def test_parse_json_export() -> None:
    """JSON exports should yield matches from match or like events."""
    result = _parse_fixture("hinge_json/matches.json")

    assert result.success is True and result.data is not None
    assert [match.match_id for match in result.data.matches] == ["match_0", "match_1"]
    assert len(result.data.participants) == 4
    assert [message.message_id for message in result.data.messages] == ["match_0_msg_0"]
    assert result.data.messages[0].sender_id == "user"
    assert result.data.matches[0].created_at == "2023-06-01 10:00:00"


def test_parse_json_export_warns_about_unknown_fields() -> None:
    """Unknown JSON match fields should be reported once."""
    result = _parse_fixture("hinge_json/matches.json")

    assert [issue.code for issue in result.warnings] == ["UNKNOWN_FIELDS"]
    assert result.warnings[0].context["fields"] == ["voice_notes"]
    assert result.schema_snapshot is not None
    assert "messages" in result.schema_snapshot.entities


def test_parse_rejects_unknown_csv_file() -> None:
    """CSV files that are neither matches nor messages should fail."""
    result = HingeParser().parse("a,b\n1,2\n", "profile.csv")

    assert result.success is False
    assert [issue.code for issue in result.errors] == ["UNKNOWN_FILE_TYPE"]


def test_parse_rejects_matches_file_without_required_columns() -> None:
    """A matches file without match_id and matched_at should fail."""
    result = HingeParser().parse("name,age\nCarla,29\n", "matches.csv")

    assert result.success is False
    assert [issue.code for issue in result.errors] == ["INVALID_HEADER"]


def test_parse_rejects_messages_file_without_required_columns() -> None:
    """A messages file without timestamp or text columns should fail."""
    result = HingeParser().parse("match_id,sender\nh1,me\n", "messages.csv")

    assert [issue.code for issue in result.errors] == ["INVALID_HEADER"]


def test_parse_accepts_look_alike_headers() -> None:
    """Decorated column names should map onto required names."""
    content = "Match_ID (hashed),Matched_At UTC\nh9,2023-01-01T00:00:00Z\n"

    result = HingeParser().parse(content, "matches.csv")

    assert result.success is True and result.data is not None
    assert result.data.matches[0].match_id == "h9"


def test_parse_rejects_invalid_json() -> None:
    """Broken JSON exports should fail with INVALID_JSON."""
    result = HingeParser().parse("[{", "matches.json")

    assert [issue.code for issue in result.errors] == ["INVALID_JSON"]


def test_validate_rejects_empty_content() -> None:
    """Whitespace-only files should be critical EMPTY_FILE issues."""
    validation = HingeParser().validate("  \n")

    assert validation.valid is False
    assert validation.errors[0].code == "EMPTY_FILE"


def test_validate_rejects_header_only_csv() -> None:
    """A CSV file needs at least one data row."""
    validation = HingeParser().validate("match_id,matched_at\n")

    assert [issue.code for issue in validation.errors] == ["INSUFFICIENT_DATA"]


def test_validate_rejects_json_object_root() -> None:
    """JSON exports must be arrays."""
    validation = HingeParser().validate('{"matches": []}')

    assert validation.valid is False
    assert validation.errors[0].code == "INVALID_JSON"


def test_canonical_header_lowercases_and_maps() -> None:
    """Headers should be lowercased with look-alikes renamed."""
    header = canonical_header(
        ["Match_ID", "Sent_At (UTC)", "Message_Text"], ("sent_at", "message_text")
    )

    assert header == ["match_id", "sent_at", "message_text"]


def test_canonical_header_ignores_other_file_type_columns() -> None:
    """Only required columns of the current file type should be renamed."""
    header = canonical_header(
        ["match_id", "matched_at", "first_message_sent_at"], ("match_id", "matched_at")
    )

    assert header == ["match_id", "matched_at", "first_message_sent_at"]


def test_parse_matches_csv_keeps_message_like_column_names() -> None:
    """A matches column mentioning sent_at should stay under its own name."""
    content = "match_id,matched_at,first_message_sent_at\nh1,2023-07-12,2023-07-13T00:00:00Z\n"

    result = HingeParser().parse(content, "matches.csv")

    assert result.success is True and result.data is not None
    assert result.data.matches[0].attributes == {
        "icebreaker_sent": False,
        "first_message_sent_at": "2023-07-13T00:00:00Z",
    }


def test_parse_json_export_links_messages_to_raw_chats() -> None:
    """Each JSON chat message should point at its own raw record."""
    result = _parse_fixture("hinge_json/matches.json")

    assert result.data is not None
    raw = result.data.messages[0].raw
    assert raw is not None
    assert raw.entity == "message"
    assert raw.data == {"timestamp": "2023-06-01 11:00:00", "body": "Hi there"}
    assert raw in result.data.raw_records


def test_parse_messages_csv_survives_malformed_timestamp() -> None:
    """A sign-garbled timestamp should flag the row, not fail the file."""
    content = (
        "match_id,sent_at,message_text,sender_role\n"
        "h1,--3,hello,user\n"
        "h1,2023-05-01T13:00:00Z,hi,match\n"
    )

    result = HingeParser().parse(content, "messages.csv")

    assert result.success is True and result.data is not None
    assert len(result.data.messages) == 2
    assert [issue.code for issue in result.errors] == ["INVALID_TIMESTAMP"]
    assert result.errors[0].line == 1
    assert result.metadata is not None and result.metadata.date_range is not None


def test_parse_same_bytes_twice_yields_same_entities() -> None:
    """Reparsing identical content should differ only in capture stamps."""
    for relative_path in ("hinge/matches.csv", "hinge/messages.csv", "hinge_json/matches.json"):
        first = _parse_fixture(relative_path)
        second = _parse_fixture(relative_path)

        assert _without_stamps(first) == _without_stamps(second)
        assert first.errors == second.errors
        assert first.warnings == second.warnings
        assert first.metadata == second.metadata


def test_status_helpers_fall_back() -> None:
    """Unrecognized status cells fall back to defaults."""
    assert match_status("Expired") == "expired"
    assert match_status("ghosted") == "active"
    assert delivery_status(None) == "unknown"
    assert delivery_status(" READ ") == "read"


def test_prompt_context_ignores_placeholder() -> None:
    """The literal None placeholder means no prompt."""
    assert prompt_context({"prompt_title": "None", "prompt_response": "None"}) is None
    context = prompt_context({"prompt_title": "Q", "prompt_response": "None"})
    assert context is not None and context.title == "Q" and context.response is None
