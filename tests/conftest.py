"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_AFTERGLOW_ENV_VARS = (
    "AFTERGLOW_OUTPUT_ROOT",
    "AFTERGLOW_TIMEZONE",
    "AFTERGLOW_MAX_WORKERS",
    "AFTERGLOW_MAX_FILE_SIZE",
    "AFTERGLOW_RULES_PATH",
)


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def isolated_afterglow_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Clear Afterglow settings and keep default batches inside tmp_path."""
    for name in _AFTERGLOW_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AFTERGLOW_OUTPUT_ROOT", str(tmp_path / "default-batches"))
