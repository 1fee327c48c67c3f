"""Python SDK for export ingestion.

This module exposes high-level APIs that read an export, parse it into
the unified model, and persist the result as an atomic batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import cast

from core.config import AfterglowConfig
from core.errors import AfterglowIngestError
from core.rules_file import load_rules_file
from core.types import SUPPORTED_PLATFORMS, ContentValidation, ExtractedFile, ParseResult, Platform
from core.validation_rules import ValidationRules
from ingest.export_reader import detect_platform, read_export
from ingest.pipeline import get_parser, parse_extracted_files
from store.batch_writer import write_batch


@dataclass(frozen=True)
class IngestOutcome:
    """Result of an ingest call.

    Attributes:
        platform: Platform the export was parsed as.
        result: Consolidated parse result.
        batch_dir: Written batch directory, None when parsing failed.
    """

    platform: Platform
    result: ParseResult
    batch_dir: Path | None


@dataclass(frozen=True)
class FileValidation:
    """Cheap pre-check outcome for one export file."""

    filename: str
    validation: ContentValidation


class AfterglowClient:
    """Primary SDK entry point for export ingestion."""

    def __init__(self, config: AfterglowConfig | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
        """
        self._config = config or AfterglowConfig.from_env()
        self._rules: dict[str, ValidationRules] | None = None

    @property
    def config(self) -> AfterglowConfig:
        """Return the runtime configuration."""
        return self._config

    def read(self, source: Path) -> list[ExtractedFile]:
        """Read decoded files from an export source."""
        return read_export(source, self._config.max_file_size)

    def parse(self, files: list[ExtractedFile], platform: str) -> ParseResult:
        """Parse extracted files with configured rules, zone and pool size."""
        return parse_extracted_files(
            files,
            platform,
            rules=self._load_rules(),
            timezone=self._config.timezone,
            max_workers=self._config.max_workers,
        )

    def ingest(
        self,
        source: Path,
        platform: str | None = None,
        batch_name: str | None = None,
    ) -> IngestOutcome:
        """Read, parse and persist an export.

        Args:
            source: ZIP archive, directory, or single file.
            platform: Platform override; detected from names when omitted.
            batch_name: Optional batch directory name.

        Returns:
            Ingest outcome with the written batch path on success.

        Raises:
            AfterglowIngestError: If the source is unreadable or the
                platform cannot be determined.
            AfterglowStoreError: If batch persistence fails.
        """
        files = self.read(source)
        resolved_platform = resolve_platform(platform, source, files)
        result = self.parse(files, resolved_platform)
        if not result.success:
            return IngestOutcome(platform=resolved_platform, result=result, batch_dir=None)
        batch_dir = write_batch(result, self._config.output_root, batch_name)
        return IngestOutcome(platform=resolved_platform, result=result, batch_dir=batch_dir)

    def validate(self, source: Path, platform: str | None = None) -> list[FileValidation]:
        """Run each file through its parser's cheap pre-check.

        Args:
            source: ZIP archive, directory, or single file.
            platform: Platform override; detected from names when omitted.

        Returns:
            One validation per file the platform reads.
        """
        files = self.read(source)
        resolved_platform = resolve_platform(platform, source, files)
        parser = get_parser(resolved_platform, self._load_rules())
        extensions = ("json",) if resolved_platform == "tinder" else ("json", "csv")
        return [
            FileValidation(filename=file.filename, validation=parser.validate(file.content))
            for file in files
            if file.extension in extensions
        ]

    def _load_rules(self) -> dict[str, ValidationRules] | None:
        if self._config.rules_path is None:
            return None
        if self._rules is None:
            self._rules = load_rules_file(self._config.rules_path)
        return self._rules


def resolve_platform(
    platform: str | None,
    source: Path,
    files: list[ExtractedFile],
) -> Platform:
    """Resolve an explicit or detected platform.

    Raises:
        AfterglowIngestError: If the platform is unsupported or undetectable.
    """
    if platform is not None:
        if platform not in SUPPORTED_PLATFORMS:
            raise AfterglowIngestError(
                f"Unsupported platform '{platform}'. Use one of: {', '.join(SUPPORTED_PLATFORMS)}."
            )
        return cast(Platform, platform)
    for name in (source.name, *(file.filename for file in files)):
        detected = detect_platform(name)
        if detected is not None:
            return detected
    raise AfterglowIngestError(
        f"Cannot detect the platform of {source}. Pass --platform explicitly."
    )
