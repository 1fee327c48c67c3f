"""Shared typed models.

This module defines the immutable unified data model produced by every
platform parser and consumed by validation, the ingest pipeline, and
batch persistence. Platform-specific field names never appear here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Mapping, Union

from core.issues import ParseIssue

Platform = Literal["tinder", "hinge"]
SUPPORTED_PLATFORMS: tuple[Platform, ...] = ("tinder", "hinge")

EntityKind = Literal["match", "message", "profile"]
MatchStatus = Literal["active", "closed", "unmatched", "expired"]
SUPPORTED_MATCH_STATUSES: tuple[MatchStatus, ...] = ("active", "closed", "unmatched", "expired")
MessageDirection = Literal["user", "match"]
DeliveryStatus = Literal["sent", "delivered", "read", "unknown"]
SUPPORTED_DELIVERY_STATUSES: tuple[DeliveryStatus, ...] = ("sent", "delivered", "read", "unknown")

AttributeValue = Union[
    str,
    int,
    float,
    bool,
    None,
    tuple[str, ...],
    tuple[Union[int, float], ...],
]
Attributes = Mapping[str, AttributeValue]


@dataclass(frozen=True)
class RawRecord:
    """Untouched source payload kept for the audit trail.

    Attributes:
        platform: Platform the payload came from.
        entity: Entity kind the payload describes.
        source: Filename the payload was read from.
        observed_at: ISO wall-clock time the payload was captured.
        data: Opaque source payload.
    """

    platform: Platform
    entity: EntityKind
    source: str
    observed_at: str
    data: object


@dataclass(frozen=True)
class Prompt:
    """One profile prompt and its answer."""

    title: str
    response: str


@dataclass(frozen=True)
class Participant:
    """Any individual represented in an export, including the user.

    Attributes:
        participant_id: Platform-scoped identifier.
        platform: Source platform.
        is_user: Whether this is the exporting user.
        name: Display name when known.
        age: Age in years when known.
        gender_label: Human-readable gender label.
        location: Free-text location.
        traits: Ordered, duplicate-free derived traits (jobs, schools).
        prompts: Ordered profile prompts.
        attributes: Unknown source fields preserved verbatim.
        raw: First source payload this participant was built from.
    """

    participant_id: str
    platform: Platform
    is_user: bool = False
    name: str | None = None
    age: int | None = None
    gender_label: str | None = None
    location: str | None = None
    traits: tuple[str, ...] = ()
    prompts: tuple[Prompt, ...] = ()
    attributes: Attributes = field(default_factory=dict)
    raw: RawRecord | None = None


@dataclass(frozen=True)
class Match:
    """Connection between the user and one other participant.

    Attributes:
        match_id: Platform-scoped identifier.
        platform: Source platform.
        created_at: ISO creation timestamp.
        status: Lifecycle state.
        participants: Exactly two participant ids, user first.
        closed_at: ISO close timestamp when closed.
        origin: How the match started (like, super-like, boost, rose).
        attributes: Unknown source fields preserved verbatim.
        raw: Source payload.
    """

    match_id: str
    platform: Platform
    created_at: str
    status: MatchStatus
    participants: tuple[str, str]
    closed_at: str | None = None
    origin: str | None = None
    attributes: Attributes = field(default_factory=dict)
    raw: RawRecord | None = None


@dataclass(frozen=True)
class Reaction:
    """Emoji reaction attached to a message."""

    emoji: str
    actor_id: str
    sent_at: str


@dataclass(frozen=True)
class PromptContext:
    """Profile prompt a message replied to."""

    title: str | None = None
    response: str | None = None


@dataclass(frozen=True)
class NormalizedMessage:
    """Platform-independent chat message.

    Attributes:
        message_id: Dataset-wide unique identifier.
        match_id: Owning match identifier.
        sender_id: Participant id of the sender.
        sent_at: ISO send timestamp.
        body: Message text, possibly empty.
        direction: ``user`` when the exporting user sent it.
        reactions: Ordered reactions.
        delivery: Delivery state when the export records one.
        prompt_context: Prompt the message replied to.
        attributes: Unknown source fields preserved verbatim.
        raw: Source payload.
    """

    message_id: str
    match_id: str
    sender_id: str
    sent_at: str
    body: str
    direction: MessageDirection
    reactions: tuple[Reaction, ...] = ()
    delivery: DeliveryStatus | None = None
    prompt_context: PromptContext | None = None
    attributes: Attributes = field(default_factory=dict)
    raw: RawRecord | None = None


@dataclass(frozen=True)
class EntitySchema:
    """Observed field summary for one entity collection."""

    observed_fields: tuple[str, ...]
    sample_count: int
    required_fields: tuple[str, ...]
    missing_fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class SchemaSnapshot:
    """Observed raw schema of one payload, captured for auditing.

    Attributes:
        platform: Source platform.
        version: Parser version that captured the snapshot.
        captured_at: ISO wall-clock capture time.
        entities: Field summary keyed by collection name.
        unknown_fields: Fields outside the known list, keyed by collection.
    """

    platform: Platform
    version: str
    captured_at: str
    entities: Mapping[str, EntitySchema] = field(default_factory=dict)
    unknown_fields: Mapping[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class DateRange:
    """Earliest and latest message timestamps in ISO form."""

    earliest: str
    latest: str


@dataclass(frozen=True)
class ParseMetadata:
    """Aggregate counts describing a parsed dataset."""

    platform: Platform
    parser_version: str
    message_count: int
    match_count: int
    participant_count: int
    date_range: DateRange | None = None


@dataclass(frozen=True)
class ParsedDataset:
    """Entity set produced from one or more export files."""

    participants: tuple[Participant, ...]
    matches: tuple[Match, ...]
    messages: tuple[NormalizedMessage, ...]
    raw_records: tuple[RawRecord, ...]


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing an export.

    A failed result carries no data. A successful result may still carry
    errors that the caller can use to block an import.
    """

    success: bool
    data: ParsedDataset | None = None
    metadata: ParseMetadata | None = None
    schema_snapshot: SchemaSnapshot | None = None
    errors: tuple[ParseIssue, ...] = ()
    warnings: tuple[ParseIssue, ...] = ()

    @classmethod
    def failed(
        cls,
        errors: tuple[ParseIssue, ...],
        warnings: tuple[ParseIssue, ...] = (),
    ) -> "ParseResult":
        """Build a failed result that carries no data."""
        return cls(success=False, errors=errors, warnings=warnings)


@dataclass(frozen=True)
class ContentValidation:
    """Result of a parser's cheap pre-parse check."""

    valid: bool
    errors: tuple[ParseIssue, ...] = ()


@dataclass(frozen=True)
class ExtractedFile:
    """Decoded file handed over by the export reader.

    Attributes:
        filename: Path of the file inside the export.
        content: Decoded text content.
        extension: Lowercase extension without the dot.
        size: Size in bytes before decoding.
    """

    filename: str
    content: str
    extension: str
    size: int
