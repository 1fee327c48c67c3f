"""Public SDK surface for Afterglow.

This module provides a stable import path for library users.
It re-exports the client, the pipeline entry points, and entity types.
"""

from __future__ import annotations

from core.config import AfterglowConfig
from core.issues import ParseIssue
from core.types import (
    ExtractedFile,
    Match,
    NormalizedMessage,
    Participant,
    ParseResult,
    RawRecord,
    SchemaSnapshot,
)
from ingest.export_reader import detect_platform, read_export
from ingest.pipeline import get_parser, parse_extracted_files
from store.afterglow_sdk import AfterglowClient, IngestOutcome
from store.batch_writer import read_batch, write_batch
from transforms.participant_deduplication import deduplicate_participants
from transforms.schema_validation import compare_schemas
from transforms.timestamp_normalization import normalize_timestamp

__all__ = [
    "AfterglowClient",
    "AfterglowConfig",
    "ExtractedFile",
    "IngestOutcome",
    "Match",
    "NormalizedMessage",
    "ParseIssue",
    "ParseResult",
    "Participant",
    "RawRecord",
    "SchemaSnapshot",
    "compare_schemas",
    "deduplicate_participants",
    "detect_platform",
    "get_parser",
    "normalize_timestamp",
    "parse_extracted_files",
    "read_batch",
    "read_export",
    "write_batch",
]
