"""Atomic batch persistence for parse results.

This module writes one successful parse result as a batch directory of
JSONL entity files plus a JSON manifest. Files land in a temporary
sibling directory first and are renamed into place together, so readers
never observe a partial batch.
"""

from __future__ import annotations

import hashlib
import json
import shutil
from datetime import datetime, timezone
from pathlib import Path

from core.constants import (
    BATCH_MANIFEST_FILE_NAME,
    MATCHES_FILE_NAME,
    MESSAGES_FILE_NAME,
    PARTICIPANTS_FILE_NAME,
    RAW_RECORDS_FILE_NAME,
)
from core.errors import AfterglowStoreError
from core.logging_config import get_logger
from core.types import ParsedDataset, ParseResult
from store.record_payload import (
    issue_to_payload,
    match_from_payload,
    match_to_payload,
    message_from_payload,
    message_to_payload,
    metadata_to_payload,
    participant_from_payload,
    participant_to_payload,
    raw_record_from_payload,
    raw_record_to_payload,
    read_jsonl,
    snapshot_to_payload,
    write_jsonl,
)

_LOGGER = get_logger(__name__)


def build_batch_name(result: ParseResult) -> str:
    """Build a unique batch name from platform, time and message ids.

    Args:
        result: Successful parse result.

    Returns:
        Batch directory name.
    """
    platform = result.metadata.platform if result.metadata else "unknown"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    message_ids = [message.message_id for message in result.data.messages] if result.data else []
    digest = hashlib.sha256("|".join(message_ids).encode("utf-8")).hexdigest()[:10]
    return f"{platform}-{timestamp}-{digest}"


def write_batch(result: ParseResult, output_root: Path, batch_name: str | None = None) -> Path:
    """Persist a successful parse result as a batch directory.

    Args:
        result: Successful parse result.
        output_root: Directory holding all batches.
        batch_name: Batch directory name; generated when omitted.

    Returns:
        Path of the written batch directory.

    Raises:
        AfterglowStoreError: If the result failed, the batch already
            exists, or files cannot be written.
    """
    if not result.success or result.data is None or result.metadata is None:
        raise AfterglowStoreError(
            "Cannot write a batch for a failed parse result. Fix the reported errors first."
        )
    name = batch_name or build_batch_name(result)
    batch_dir = output_root / name
    if batch_dir.exists():
        raise AfterglowStoreError(
            f"Batch already exists at {batch_dir}. Choose a different batch name."
        )
    staging_dir = output_root / f".{name}.tmp"
    try:
        output_root.mkdir(parents=True, exist_ok=True)
        if staging_dir.exists():
            shutil.rmtree(staging_dir)
        staging_dir.mkdir()
        counts = _write_entity_files(staging_dir, result.data)
        _write_manifest(staging_dir, result, counts)
        staging_dir.rename(batch_dir)
    except OSError as error:
        shutil.rmtree(staging_dir, ignore_errors=True)
        raise AfterglowStoreError(f"Failed to write batch at {batch_dir}: {error}.") from error
    _LOGGER.info("batch_written", batch_dir=str(batch_dir), **counts)
    return batch_dir


def read_batch(batch_dir: Path) -> ParsedDataset:
    """Load the entity files of a written batch.

    Args:
        batch_dir: Batch directory written by ``write_batch``.

    Returns:
        Dataset rebuilt from the batch's JSONL files.

    Raises:
        AfterglowStoreError: If the batch is missing or malformed.
    """
    if not (batch_dir / BATCH_MANIFEST_FILE_NAME).exists():
        raise AfterglowStoreError(f"No batch manifest found at {batch_dir}.")
    try:
        return ParsedDataset(
            participants=tuple(
                read_jsonl(batch_dir / PARTICIPANTS_FILE_NAME, participant_from_payload)
            ),
            matches=tuple(read_jsonl(batch_dir / MATCHES_FILE_NAME, match_from_payload)),
            messages=tuple(read_jsonl(batch_dir / MESSAGES_FILE_NAME, message_from_payload)),
            raw_records=tuple(
                read_jsonl(batch_dir / RAW_RECORDS_FILE_NAME, raw_record_from_payload)
            ),
        )
    except (OSError, ValueError, KeyError) as error:
        raise AfterglowStoreError(f"Failed to read batch at {batch_dir}: {error}.") from error


def _write_entity_files(batch_dir: Path, dataset: ParsedDataset) -> dict[str, int]:
    return {
        "participant_count": write_jsonl(
            batch_dir / PARTICIPANTS_FILE_NAME, dataset.participants, participant_to_payload
        ),
        "match_count": write_jsonl(
            batch_dir / MATCHES_FILE_NAME, dataset.matches, match_to_payload
        ),
        "message_count": write_jsonl(
            batch_dir / MESSAGES_FILE_NAME, dataset.messages, message_to_payload
        ),
        "raw_record_count": write_jsonl(
            batch_dir / RAW_RECORDS_FILE_NAME, dataset.raw_records, raw_record_to_payload
        ),
    }


def _write_manifest(batch_dir: Path, result: ParseResult, counts: dict[str, int]) -> None:
    manifest = {
        "metadata": metadata_to_payload(result.metadata) if result.metadata else None,
        "counts": counts,
        "errors": [issue_to_payload(issue) for issue in result.errors],
        "warnings": [issue_to_payload(issue) for issue in result.warnings],
        "schema_snapshot": (
            snapshot_to_payload(result.schema_snapshot) if result.schema_snapshot else None
        ),
    }
    manifest_path = batch_dir / BATCH_MANIFEST_FILE_NAME
    manifest_path.write_text(
        json.dumps(manifest, indent=2, sort_keys=True, default=str) + "\n", encoding="utf-8"
    )
