"""Unit tests for export source readers."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from core.errors import AfterglowIngestError
from ingest.export_reader import detect_platform, read_export
from tests.fixture_paths import fixture_path


def test_read_export_reads_directory_in_sorted_order() -> None:
    """Directory sources should yield supported files sorted by path."""
    files = read_export(fixture_path("hinge"))

    assert [file.filename for file in files] == ["matches.csv", "messages.csv"]
    assert all(file.extension == "csv" for file in files)
    assert files[0].content.startswith("match_id,matched_at")


def test_read_export_reads_zip_and_skips_noise(tmp_path: Path) -> None:
    """Archives should skip macOS metadata, hidden files, and other types."""
    archive_path = tmp_path / "export.zip"
    with zipfile.ZipFile(archive_path, "w") as archive:
        archive.writestr("export/messages.csv", "match_id,sent_at\nh1,2023-01-01\n")
        archive.writestr("__MACOSX/export/._messages.csv", "junk")
        archive.writestr("export/.DS_Store", "junk")
        archive.writestr("export/readme.txt", "hello")
        archive.writestr("export/matches.json", "[]")

    files = read_export(archive_path)

    assert [file.filename for file in files] == ["export/matches.json", "export/messages.csv"]


def test_read_export_strips_utf8_bom(tmp_path: Path) -> None:
    """A leading byte-order mark should not reach the parser."""
    file_path = tmp_path / "data.json"
    file_path.write_bytes(b"\xef\xbb\xbf{}")

    files = read_export(file_path)

    assert files[0].content == "{}"
    assert files[0].size == 5


def test_read_export_skips_oversized_files(tmp_path: Path) -> None:
    """Files above the size limit should be skipped."""
    (tmp_path / "small.json").write_text("{}", encoding="utf-8")
    (tmp_path / "large.json").write_text("[" + "1," * 50 + "1]", encoding="utf-8")

    files = read_export(tmp_path, max_file_size=10)

    assert [file.filename for file in files] == ["small.json"]


def test_read_export_sizes_directory_files_before_reading(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Oversized directory files should be skipped without loading their bytes."""
    (tmp_path / "small.json").write_text("{}", encoding="utf-8")
    (tmp_path / "large.json").write_text("[" + "1," * 50 + "1]", encoding="utf-8")
    read_names: list[str] = []
    original_read_bytes = Path.read_bytes

    def recording_read_bytes(path: Path) -> bytes:
        read_names.append(path.name)
        return original_read_bytes(path)

    monkeypatch.setattr(Path, "read_bytes", recording_read_bytes)

    files = read_export(tmp_path, max_file_size=10)

    assert [file.filename for file in files] == ["small.json"]
    assert read_names == ["small.json"]


def test_read_export_wraps_directory_read_failures(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """OS errors while reading a directory file should become ingest errors."""
    (tmp_path / "data.json").write_text("{}", encoding="utf-8")

    def failing_read_bytes(path: Path) -> bytes:
        raise PermissionError(f"denied: {path.name}")

    monkeypatch.setattr(Path, "read_bytes", failing_read_bytes)

    with pytest.raises(AfterglowIngestError, match="Failed to read export file"):
        read_export(tmp_path)


def test_read_export_rejects_missing_path(tmp_path: Path) -> None:
    """Missing sources should raise an ingest error."""
    with pytest.raises(AfterglowIngestError, match="does not exist"):
        read_export(tmp_path / "absent.zip")


def test_read_export_rejects_corrupt_zip(tmp_path: Path) -> None:
    """Corrupt archives should raise an ingest error."""
    archive_path = tmp_path / "export.zip"
    archive_path.write_bytes(b"not a zip")

    with pytest.raises(AfterglowIngestError, match="ZIP"):
        read_export(archive_path)


def test_read_export_rejects_sources_without_data_files(tmp_path: Path) -> None:
    """Directories without JSON or CSV files should raise."""
    (tmp_path / "notes.txt").write_text("hello", encoding="utf-8")

    with pytest.raises(AfterglowIngestError, match="No usable export files"):
        read_export(tmp_path)


def test_read_export_rejects_non_utf8_files(tmp_path: Path) -> None:
    """Undecodable files should raise instead of being mangled."""
    (tmp_path / "data.json").write_bytes(b"\xff\xfe\x00bad")

    with pytest.raises(AfterglowIngestError, match="UTF-8"):
        read_export(tmp_path)


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("tinder_data.json", "tinder"),
        ("Hinge/export.json", "hinge"),
        ("matches.csv", "hinge"),
        ("notes.json", None),
    ],
)
def test_detect_platform_uses_filename(filename: str, expected: str | None) -> None:
    """Platform detection should key off filename fragments."""
    assert detect_platform(filename) == expected
