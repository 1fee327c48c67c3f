"""Ingest orchestration for extracted export files.

This module selects the platform parser, fans multi-file Hinge exports
out over a thread pool, merges their results, and applies timestamp
normalization and participant deduplication to the final entity set.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Mapping, Sequence, cast

from core.constants import DEFAULT_MAX_WORKERS, DEFAULT_TIMEZONE, PARSER_VERSION
from core.errors import AfterglowIngestError
from core.issues import IssueCode, ParseIssue, create_error
from core.logging_config import get_logger
from core.types import (
    SUPPORTED_PLATFORMS,
    EntitySchema,
    ExtractedFile,
    Match,
    NormalizedMessage,
    Participant,
    ParsedDataset,
    ParseMetadata,
    ParseResult,
    Platform,
    RawRecord,
    SchemaSnapshot,
)
from core.validation_rules import ValidationRules
from parsers.base import ExportParser, build_metadata, calculate_date_range
from parsers.hinge_parser import HingeParser
from parsers.tinder_parser import TinderParser
from transforms.participant_deduplication import deduplicate_participants, merge_participants
from transforms.timestamp_normalization import normalize_timestamp

_LOGGER = get_logger(__name__)
_HINGE_EXTENSIONS = ("csv", "json")


def get_parser(
    platform: str,
    rules: Mapping[str, ValidationRules] | None = None,
) -> ExportParser:
    """Return the parser for a platform.

    Args:
        platform: Platform name.
        rules: Optional validation rules keyed by platform.

    Returns:
        Parser instance configured with the platform's rules.

    Raises:
        AfterglowIngestError: If no parser exists for the platform.
    """
    platform_rules = (rules or {}).get(platform)
    if platform == "tinder":
        return TinderParser(platform_rules)
    if platform == "hinge":
        return HingeParser(platform_rules)
    raise AfterglowIngestError(
        f"No parser available for platform '{platform}'. "
        f"Use one of: {', '.join(SUPPORTED_PLATFORMS)}."
    )


def parse_extracted_files(
    files: Sequence[ExtractedFile],
    platform: str,
    *,
    rules: Mapping[str, ValidationRules] | None = None,
    timezone: str = DEFAULT_TIMEZONE,
    max_workers: int | None = None,
) -> ParseResult:
    """Parse extracted export files into one consolidated result.

    Args:
        files: Decoded files from the export reader.
        platform: Target platform.
        rules: Optional validation rules keyed by platform.
        timezone: Output zone for normalized timestamps.
        max_workers: Thread pool size for multi-file exports.

    Returns:
        Consolidated parse result with normalized timestamps and
        deduplicated participants.
    """
    if not files:
        return _critical("NO_FILES", "No files to parse")
    try:
        parser = get_parser(platform, rules)
    except AfterglowIngestError as error:
        return _critical("UNKNOWN_PLATFORM", str(error), context={"platform": platform})
    if platform == "tinder":
        result = _parse_tinder(parser, files)
    else:
        result = _parse_hinge(parser, files, max_workers or DEFAULT_MAX_WORKERS)
    if not result.success:
        return result
    finalized = finalize_result(result, timezone)
    _log_ingest_completion(platform, len(files), finalized)
    return finalized


def finalize_result(result: ParseResult, timezone: str = DEFAULT_TIMEZONE) -> ParseResult:
    """Normalize timestamps, deduplicate participants and refresh metadata."""
    if result.data is None or result.metadata is None:
        return result
    data = result.data
    messages = tuple(_normalize_message(message, timezone) for message in data.messages)
    matches = tuple(_normalize_match(match, timezone) for match in data.matches)
    participants = tuple(deduplicate_participants(data.participants))
    metadata = replace(
        result.metadata,
        participant_count=len(participants),
        date_range=calculate_date_range(messages),
    )
    return replace(
        result,
        data=replace(data, participants=participants, matches=matches, messages=messages),
        metadata=metadata,
    )


def merge_parse_results(results: Sequence[ParseResult], platform: Platform) -> ParseResult:
    """Merge per-file results in input order.

    Args:
        results: Per-file parse results.
        platform: Platform the results belong to.

    Returns:
        Failed result with every sub-error when no file parsed, else a
        merged result built from the successful subset.
    """
    successes = [result for result in results if result.success and result.data is not None]
    if not successes:
        return ParseResult.failed(
            tuple(issue for result in results for issue in result.errors),
            tuple(issue for result in results for issue in result.warnings),
        )
    participants: dict[str, Participant] = {}
    matches: list[Match] = []
    messages: list[NormalizedMessage] = []
    raw_records: list[RawRecord] = []
    errors: list[ParseIssue] = []
    warnings: list[ParseIssue] = []
    for result in successes:
        data = cast(ParsedDataset, result.data)
        for participant in data.participants:
            existing = participants.get(participant.participant_id)
            participants[participant.participant_id] = (
                participant if existing is None else merge_participants(existing, participant)
            )
        matches.extend(data.matches)
        messages.extend(data.messages)
        raw_records.extend(data.raw_records)
        errors.extend(result.errors)
        warnings.extend(result.warnings)
    dataset = ParsedDataset(
        participants=tuple(participants.values()),
        matches=tuple(matches),
        messages=tuple(messages),
        raw_records=tuple(raw_records),
    )
    version = successes[0].metadata.parser_version if successes[0].metadata else PARSER_VERSION
    return ParseResult(
        success=True,
        data=dataset,
        metadata=build_metadata(platform, version, dataset),
        schema_snapshot=_merge_snapshots(
            [result.schema_snapshot for result in successes if result.schema_snapshot]
        ),
        errors=tuple(errors),
        warnings=tuple(warnings),
    )


def _parse_tinder(parser: ExportParser, files: Sequence[ExtractedFile]) -> ParseResult:
    json_file = next((file for file in files if file.extension == "json"), None)
    if json_file is None:
        return _critical("NO_JSON_FILE", "Tinder export must contain a JSON file")
    return parser.parse(json_file.content, json_file.filename)


def _parse_hinge(
    parser: ExportParser,
    files: Sequence[ExtractedFile],
    max_workers: int,
) -> ParseResult:
    data_files = [file for file in files if file.extension in _HINGE_EXTENSIONS]
    if not data_files:
        return _critical("NO_DATA_FILES", "Hinge export must contain CSV or JSON files")
    worker_count = min(max_workers, len(data_files))
    with ThreadPoolExecutor(max_workers=worker_count) as executor:
        results = list(
            executor.map(
                parser.parse,
                [file.content for file in data_files],
                [file.filename for file in data_files],
            )
        )
    return merge_parse_results(results, "hinge")


def _merge_snapshots(snapshots: list[SchemaSnapshot]) -> SchemaSnapshot | None:
    if not snapshots:
        return None
    entities: dict[str, EntitySchema] = {}
    unknown_fields: dict[str, tuple[str, ...]] = {}
    for snapshot in snapshots:
        for name, entity in snapshot.entities.items():
            entities.setdefault(name, entity)
        for name, fields in snapshot.unknown_fields.items():
            merged = unknown_fields.get(name, ())
            unknown_fields[name] = merged + tuple(item for item in fields if item not in merged)
    return replace(snapshots[0], entities=entities, unknown_fields=unknown_fields)


def _normalize_message(message: NormalizedMessage, timezone: str) -> NormalizedMessage:
    reactions = tuple(
        replace(reaction, sent_at=_normalized_or_verbatim(reaction.sent_at, timezone))
        for reaction in message.reactions
    )
    return replace(
        message,
        sent_at=_normalized_or_verbatim(message.sent_at, timezone),
        reactions=reactions,
    )


def _normalize_match(match: Match, timezone: str) -> Match:
    closed_at = match.closed_at
    if closed_at:
        closed_at = _normalized_or_verbatim(closed_at, timezone)
    return replace(
        match,
        created_at=_normalized_or_verbatim(match.created_at, timezone),
        closed_at=closed_at,
    )


def _normalized_or_verbatim(value: str, timezone: str) -> str:
    return normalize_timestamp(value, timezone) or value


def _critical(
    code: IssueCode,
    message: str,
    context: Mapping[str, object] | None = None,
) -> ParseResult:
    return ParseResult.failed((create_error(code, message, critical=True, context=context),))


def _log_ingest_completion(platform: str, file_count: int, result: ParseResult) -> None:
    """Log ingest completion with entity counts."""
    metadata: ParseMetadata | None = result.metadata
    _LOGGER.info(
        "ingest_completed",
        platform=platform,
        file_count=file_count,
        message_count=metadata.message_count if metadata else 0,
        match_count=metadata.match_count if metadata else 0,
        participant_count=metadata.participant_count if metadata else 0,
        error_count=len(result.errors),
        warning_count=len(result.warnings),
    )
