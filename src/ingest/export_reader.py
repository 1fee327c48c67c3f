"""Export source readers.

This module loads dating-platform exports from a ZIP archive, an
unpacked directory, or a single data file. It decodes supported files
into typed ``ExtractedFile`` records for the ingest pipeline.
"""

from __future__ import annotations

import zipfile
from pathlib import Path, PurePosixPath

from core.constants import DEFAULT_MAX_FILE_SIZE, SUPPORTED_EXPORT_EXTENSIONS
from core.errors import AfterglowIngestError
from core.logging_config import get_logger
from core.types import ExtractedFile, Platform

_LOGGER = get_logger(__name__)
_IGNORED_NAMES = {".DS_Store"}
_IGNORED_PREFIXES = ("__MACOSX",)


def read_export(
    source_path: Path,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
) -> list[ExtractedFile]:
    """Load decoded files from an export source.

    Args:
        source_path: ZIP archive, directory, or single JSON/CSV file.
        max_file_size: Per-file byte limit; larger files are skipped.

    Returns:
        Supported files in sorted path order.

    Raises:
        AfterglowIngestError: If the source is missing, unreadable, or
            holds no supported files.
    """
    resolved = source_path.expanduser()
    if not resolved.exists():
        raise AfterglowIngestError(
            f"Failed to read export at {resolved}: path does not exist. "
            "Provide an existing ZIP archive, directory, or file."
        )
    if resolved.is_dir():
        files = _read_directory(resolved, max_file_size)
    elif resolved.suffix.lower() == ".zip":
        files = _read_archive(resolved, max_file_size)
    else:
        files = _read_single_file(resolved, max_file_size)
    if not files:
        raise AfterglowIngestError(
            f"No usable export files found in {resolved}. "
            f"Supported extensions: {', '.join(SUPPORTED_EXPORT_EXTENSIONS)}."
        )
    _LOGGER.info("export_read", source=str(resolved), file_count=len(files))
    return files


def detect_platform(filename: str) -> Platform | None:
    """Guess the platform from an export filename."""
    lowered = filename.lower()
    if "tinder" in lowered:
        return "tinder"
    if "hinge" in lowered or "matches" in lowered or "messages" in lowered:
        return "hinge"
    return None


def _read_directory(directory: Path, max_file_size: int) -> list[ExtractedFile]:
    files: list[ExtractedFile] = []
    for file_path in sorted(directory.rglob("*")):
        relative_name = file_path.relative_to(directory).as_posix()
        if not file_path.is_file() or not _is_supported_name(relative_name):
            continue
        extracted = _read_local_file(file_path, relative_name, max_file_size)
        if extracted is not None:
            files.append(extracted)
    return files


def _read_archive(archive_path: Path, max_file_size: int) -> list[ExtractedFile]:
    try:
        with zipfile.ZipFile(archive_path) as archive:
            files: list[ExtractedFile] = []
            for info in sorted(archive.infolist(), key=lambda item: item.filename):
                if info.is_dir() or not _is_supported_name(info.filename):
                    continue
                if info.file_size > max_file_size:
                    _log_oversized(info.filename, info.file_size, max_file_size)
                    continue
                extracted = _decode_file(info.filename, archive.read(info), max_file_size)
                if extracted is not None:
                    files.append(extracted)
            return files
    except (zipfile.BadZipFile, OSError) as error:
        raise AfterglowIngestError(
            f"Failed to read ZIP archive at {archive_path}: {error}. "
            "Re-download the export and try again."
        ) from error


def _read_single_file(file_path: Path, max_file_size: int) -> list[ExtractedFile]:
    if not _is_supported_name(file_path.name):
        return []
    extracted = _read_local_file(file_path, file_path.name, max_file_size)
    return [extracted] if extracted is not None else []


def _read_local_file(file_path: Path, filename: str, max_file_size: int) -> ExtractedFile | None:
    try:
        size = file_path.stat().st_size
        if size > max_file_size:
            _log_oversized(filename, size, max_file_size)
            return None
        payload = file_path.read_bytes()
    except OSError as error:
        raise AfterglowIngestError(f"Failed to read export file {file_path}: {error}.") from error
    return _decode_file(filename, payload, max_file_size)


def _decode_file(filename: str, payload: bytes, max_file_size: int) -> ExtractedFile | None:
    if len(payload) > max_file_size:
        _log_oversized(filename, len(payload), max_file_size)
        return None
    try:
        content = payload.decode("utf-8-sig")
    except UnicodeDecodeError as error:
        raise AfterglowIngestError(
            f"Export file {filename} is not valid UTF-8: {error}."
        ) from error
    return ExtractedFile(
        filename=filename,
        content=content,
        extension=_extension(filename),
        size=len(payload),
    )


def _is_supported_name(filename: str) -> bool:
    path = PurePosixPath(filename)
    if path.name in _IGNORED_NAMES or path.name.startswith("."):
        return False
    if path.parts and path.parts[0] in _IGNORED_PREFIXES:
        return False
    return _extension(filename) in SUPPORTED_EXPORT_EXTENSIONS


def _extension(filename: str) -> str:
    return PurePosixPath(filename).suffix.lower().lstrip(".")


def _log_oversized(filename: str, size: int, max_file_size: int) -> None:
    _LOGGER.warning(
        "export_file_skipped",
        filename=filename,
        size=size,
        max_file_size=max_file_size,
    )
