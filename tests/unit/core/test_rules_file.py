"""Unit tests for YAML validation rules loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import AfterglowConfigError
from core.rules_file import load_rules_file
from core.validation_rules import default_rules
from tests.fixture_paths import fixture_path


def test_load_rules_file_applies_overrides() -> None:
    """Thresholds and extra known fields should override defaults."""
    rules = load_rules_file(fixture_path("rules/strict.yaml"))

    tinder_rules = rules["tinder"]
    assert tinder_rules.min_message_count == 5
    assert tinder_rules.min_match_count == 3
    assert "liked" in tinder_rules.entity("messages").known_fields
    assert "reactions" in tinder_rules.entity("messages").known_fields


def test_load_rules_file_keeps_defaults_for_other_platforms() -> None:
    """Platforms absent from the file should keep default rules."""
    rules = load_rules_file(fixture_path("rules/strict.yaml"))

    assert rules["hinge"] == default_rules("hinge")


def test_load_rules_file_rejects_negative_counts() -> None:
    """Negative thresholds should be reported as config errors."""
    with pytest.raises(AfterglowConfigError, match="min_message_count"):
        load_rules_file(fixture_path("rules/invalid.yaml"))


def test_load_rules_file_rejects_unknown_version(tmp_path: Path) -> None:
    """Only version 1 rules files are accepted."""
    rules_path = tmp_path / "rules.yaml"
    rules_path.write_text("version: 2\nplatforms: {}\n", encoding="utf-8")

    with pytest.raises(AfterglowConfigError, match="version"):
        load_rules_file(rules_path)


def test_load_rules_file_rejects_unknown_platform(tmp_path: Path) -> None:
    """Platforms outside the supported set should fail."""
    rules_path = tmp_path / "rules.yaml"
    rules_path.write_text("version: 1\nplatforms:\n  bumble: {}\n", encoding="utf-8")

    with pytest.raises(AfterglowConfigError, match="bumble"):
        load_rules_file(rules_path)


def test_load_rules_file_rejects_unknown_keys(tmp_path: Path) -> None:
    """Misspelled keys should be reported instead of ignored."""
    rules_path = tmp_path / "rules.yaml"
    rules_path.write_text(
        "version: 1\nplatforms:\n  hinge:\n    min_messages: 3\n", encoding="utf-8"
    )

    with pytest.raises(AfterglowConfigError, match="min_messages"):
        load_rules_file(rules_path)


def test_load_rules_file_reports_missing_file(tmp_path: Path) -> None:
    """A missing file should be a config error."""
    with pytest.raises(AfterglowConfigError, match="does not exist"):
        load_rules_file(tmp_path / "absent.yaml")
