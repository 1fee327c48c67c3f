"""Unit tests for ingest pipeline orchestration."""

from __future__ import annotations

import pytest

from core.errors import AfterglowIngestError
from core.types import ExtractedFile
from ingest.export_reader import read_export
from ingest.pipeline import (
    finalize_result,
    get_parser,
    merge_parse_results,
    parse_extracted_files,
)
from parsers.hinge_parser import HingeParser
from parsers.tinder_parser import TinderParser
from tests.fixture_paths import fixture_path, fixture_text


def _file(filename: str, content: str) -> ExtractedFile:
    extension = filename.rsplit(".", 1)[-1]
    return ExtractedFile(
        filename=filename, content=content, extension=extension, size=len(content)
    )


def _codes(result) -> list[str]:
    return [issue.code for issue in result.errors]


def test_get_parser_returns_platform_parser() -> None:
    """Known platforms should map onto their parsers."""
    assert isinstance(get_parser("tinder"), TinderParser)
    assert isinstance(get_parser("hinge"), HingeParser)


def test_get_parser_rejects_unknown_platform() -> None:
    """Unknown platforms should raise an ingest error."""
    with pytest.raises(AfterglowIngestError, match="bumble"):
        get_parser("bumble")


def test_parse_extracted_files_requires_files() -> None:
    """An empty file list should fail with NO_FILES."""
    result = parse_extracted_files([], "tinder")

    assert result.success is False
    assert _codes(result) == ["NO_FILES"]


def test_parse_extracted_files_rejects_unknown_platform() -> None:
    """Unsupported platforms should fail with UNKNOWN_PLATFORM."""
    result = parse_extracted_files([_file("data.json", "{}")], "bumble")

    assert _codes(result) == ["UNKNOWN_PLATFORM"]


def test_parse_extracted_files_requires_tinder_json() -> None:
    """Tinder exports without a JSON file should fail with NO_JSON_FILE."""
    result = parse_extracted_files([_file("matches.csv", "a,b\n1,2\n")], "tinder")

    assert _codes(result) == ["NO_JSON_FILE"]


def test_parse_extracted_files_requires_hinge_data_files() -> None:
    """Hinge exports without CSV or JSON files should fail with NO_DATA_FILES."""
    result = parse_extracted_files([_file("notes.txt", "hello")], "hinge")

    assert _codes(result) == ["NO_DATA_FILES"]


def test_parse_extracted_files_normalizes_tinder_timestamps() -> None:
    """Tinder timestamps should be normalized to canonical UTC text."""
    files = read_export(fixture_path("tinder"))

    result = parse_extracted_files(files, "tinder")

    assert result.success is True and result.data is not None
    sent = [message.sent_at for message in result.data.messages]
    assert sent == [
        "2023-07-12T22:41:13.000Z",
        "2023-07-12T23:00:00.000Z",
        "2023-07-21T00:40:00.000Z",
    ]
    assert result.data.messages[0].reactions[0].sent_at == "2023-07-12T22:45:00.000Z"
    assert result.data.matches[1].created_at == "2023-07-10T14:40:00.000Z"
    assert result.data.matches[1].closed_at == "2023-07-20T10:00:00.000Z"


def test_parse_extracted_files_applies_timezone() -> None:
    """A configured zone should render offsets instead of UTC."""
    files = read_export(fixture_path("tinder"))

    result = parse_extracted_files(files, "tinder", timezone="America/New_York")

    assert result.data is not None
    assert result.data.messages[0].sent_at == "2023-07-12T18:41:13.000-04:00"
    assert result.metadata is not None and result.metadata.date_range is not None
    assert result.metadata.date_range.earliest == "2023-07-12T22:41:13.000Z"


def test_parse_extracted_files_merges_hinge_files() -> None:
    """Matches and messages files should merge into one dataset."""
    files = read_export(fixture_path("hinge"))

    result = parse_extracted_files(files, "hinge", max_workers=2)

    assert result.success is True and result.data is not None
    assert [match.match_id for match in result.data.matches] == ["h1", "h2"]
    assert len(result.data.messages) == 3
    participants = {item.participant_id: item for item in result.data.participants}
    assert set(participants) == {"user", "match_h1_person", "match_h2_person"}
    assert participants["match_h1_person"].age == 29
    assert result.metadata is not None
    assert result.metadata.participant_count == 3
    assert result.metadata.date_range is not None
    assert result.metadata.date_range.latest == "2023-05-04T09:00:00.000Z"


def test_parse_extracted_files_merges_schema_snapshots() -> None:
    """The merged snapshot should describe both Hinge files."""
    files = read_export(fixture_path("hinge"))

    result = parse_extracted_files(files, "hinge")

    assert result.schema_snapshot is not None
    assert set(result.schema_snapshot.entities) == {"matches", "messages"}
    assert result.schema_snapshot.unknown_fields == {"matches": ("favorite_color",)}


def test_merge_parse_results_fails_when_every_file_fails() -> None:
    """All failed files should yield a failed result with every error."""
    parser = HingeParser()
    results = [parser.parse("a\n1\n", "first.csv"), parser.parse("a\n1\n", "second.csv")]

    merged = merge_parse_results(results, "hinge")

    assert merged.success is False
    assert _codes(merged) == ["UNKNOWN_FILE_TYPE", "UNKNOWN_FILE_TYPE"]


def test_merge_parse_results_keeps_successful_subset() -> None:
    """A failing file should not block the files that parsed."""
    parser = HingeParser()
    results = [
        parser.parse(fixture_text("hinge/matches.csv"), "matches.csv"),
        parser.parse("a\n1\n", "profile.csv"),
    ]

    merged = merge_parse_results(results, "hinge")

    assert merged.success is True and merged.data is not None
    assert len(merged.data.matches) == 2
    assert "UNKNOWN_FILE_TYPE" not in _codes(merged)


def test_finalize_result_is_idempotent() -> None:
    """Finalizing an already finalized result should change nothing."""
    files = read_export(fixture_path("tinder"))
    result = parse_extracted_files(files, "tinder")

    assert finalize_result(result) == result


def test_finalize_result_keeps_unparseable_timestamps_verbatim() -> None:
    """Timestamps that cannot be normalized should survive unchanged."""
    payload = (
        '{"matches": [{"_id": "m1", "person": {"_id": "p"}, "created_date": "soon"}],'
        ' "messages": []}'
    )

    result = parse_extracted_files([_file("data.json", payload)], "tinder")

    assert result.data is not None
    assert result.data.matches[0].created_at == "soon"
    assert "INVALID_TIMESTAMP" in _codes(result)
