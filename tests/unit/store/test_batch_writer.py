"""Unit tests for atomic batch persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.errors import AfterglowStoreError
from core.types import ParseResult
from ingest.export_reader import read_export
from ingest.pipeline import parse_extracted_files
from store.batch_writer import build_batch_name, read_batch, write_batch
from tests.fixture_paths import fixture_path


def _tinder_result() -> ParseResult:
    return parse_extracted_files(read_export(fixture_path("tinder")), "tinder")


def test_write_batch_round_trips_dataset(tmp_path: Path) -> None:
    """Reading a written batch should rebuild the same entities."""
    result = _tinder_result()

    batch_dir = write_batch(result, tmp_path, "first")
    restored = read_batch(batch_dir)

    assert restored == result.data


def test_write_batch_round_trips_hinge_dataset(tmp_path: Path) -> None:
    """Prompt context and delivery state should survive persistence."""
    result = parse_extracted_files(read_export(fixture_path("hinge")), "hinge")

    restored = read_batch(write_batch(result, tmp_path, "hinge-batch"))

    assert restored == result.data


def test_write_batch_writes_manifest(tmp_path: Path) -> None:
    """The manifest should record counts, issues, and the schema snapshot."""
    result = _tinder_result()

    batch_dir = write_batch(result, tmp_path, "manifest-check")
    manifest = json.loads((batch_dir / "manifest.json").read_text(encoding="utf-8"))

    assert manifest["counts"] == {
        "participant_count": 3,
        "match_count": 2,
        "message_count": 3,
        "raw_record_count": 8,
    }
    assert manifest["metadata"]["platform"] == "tinder"
    assert [issue["code"] for issue in manifest["warnings"]] == [
        "UNKNOWN_FIELDS",
        "UNKNOWN_FIELDS",
        "EMPTY_MESSAGE_BODY",
    ]
    assert manifest["schema_snapshot"]["unknown_fields"]["messages"] == ["liked"]


def test_write_batch_leaves_no_staging_directory(tmp_path: Path) -> None:
    """Only the final batch directory should remain after a write."""
    write_batch(_tinder_result(), tmp_path, "clean")

    assert [path.name for path in tmp_path.iterdir()] == ["clean"]


def test_write_batch_rejects_existing_batch(tmp_path: Path) -> None:
    """Writing over an existing batch should fail."""
    result = _tinder_result()
    write_batch(result, tmp_path, "dup")

    with pytest.raises(AfterglowStoreError, match="already exists"):
        write_batch(result, tmp_path, "dup")


def test_write_batch_rejects_failed_result(tmp_path: Path) -> None:
    """Failed parse results carry no data to persist."""
    with pytest.raises(AfterglowStoreError, match="failed parse result"):
        write_batch(ParseResult.failed(()), tmp_path, "failed")


def test_read_batch_requires_manifest(tmp_path: Path) -> None:
    """Directories without a manifest are not batches."""
    with pytest.raises(AfterglowStoreError, match="manifest"):
        read_batch(tmp_path)


def test_build_batch_name_prefixes_platform() -> None:
    """Generated batch names should start with the platform."""
    name = build_batch_name(_tinder_result())

    assert name.startswith("tinder-")
    assert len(name.rsplit("-", 1)[-1]) == 10
