"""Core constants used across Afterglow modules.

This module centralizes platform field contracts and runtime defaults.
Keeping values here avoids magic literals in parsing logic.
"""

from __future__ import annotations

from pathlib import Path

PARSER_VERSION = "1.0.0"
DEFAULT_OUTPUT_ROOT = Path(".afterglow")
DEFAULT_TIMEZONE = "UTC"
DEFAULT_MAX_WORKERS = 4
DEFAULT_MAX_FILE_SIZE = 100 * 1024 * 1024
SUPPORTED_EXPORT_EXTENSIONS = ("json", "csv")
SCHEMA_SAMPLE_SIZE = 10
MILLISECOND_THRESHOLD = 10_000_000_000
MIN_VALID_AGE = 0
MAX_VALID_AGE = 120

BATCH_MANIFEST_FILE_NAME = "manifest.json"
PARTICIPANTS_FILE_NAME = "participants.jsonl"
MATCHES_FILE_NAME = "matches.jsonl"
MESSAGES_FILE_NAME = "messages.jsonl"
RAW_RECORDS_FILE_NAME = "raw_records.jsonl"

TINDER_UNKNOWN_USER_ID = "unknown_user"
TINDER_USER_SENTINELS = ("self", "you")
TINDER_GENDER_LABELS = {0: "Male", 1: "Female", -1: "Non-binary"}
TINDER_DEFAULT_GENDER_LABEL = "Other"

TINDER_REQUIRED_MESSAGE_FIELDS = ("_id", "match_id", "sent_date", "message", "from", "to")
TINDER_REQUIRED_MATCH_FIELDS = ("_id", "person", "created_date")
TINDER_REQUIRED_PROFILE_FIELDS = ("_id",)
TINDER_KNOWN_MESSAGE_FIELDS = ("reactions",)
TINDER_KNOWN_MATCH_FIELDS = (
    "last_activity_date",
    "is_super_like",
    "is_boost_match",
    "is_tutorial",
    "closed",
)
TINDER_KNOWN_PERSON_FIELDS = ("_id", "name", "birth_date", "gender", "jobs", "schools")
TINDER_KNOWN_USER_FIELDS = ("_id", "birth_date", "gender")

HINGE_USER_ID = "user"
HINGE_REQUIRED_MATCH_COLUMNS = ("match_id", "matched_at")
HINGE_REQUIRED_MESSAGE_COLUMNS = ("sent_at", "message_text")
HINGE_KNOWN_MATCH_COLUMNS = (
    "conversation_id",
    "match_type",
    "match_origin",
    "match_status",
    "icebreaker_sent",
    "profile_name",
    "profile_age",
    "profile_location",
)
HINGE_KNOWN_MESSAGE_COLUMNS = (
    "match_id",
    "conversation_id",
    "sender_role",
    "sender_name",
    "recipient_name",
    "delivery_status",
    "prompt_title",
    "prompt_response",
)
HINGE_JSON_REQUIRED_CHAT_FIELDS = ("timestamp", "body")
HINGE_JSON_KNOWN_MATCH_FIELDS = ("match", "like", "chats", "block", "we_met")
HINGE_PROMPT_PLACEHOLDER = "None"
