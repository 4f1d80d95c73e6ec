"""Shared pytest fixtures for Snap tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest

from packages.snap_shared.config import SnapSettings

# Argon2 parameters cheap enough for unit tests.
FAST_AUTH = {
    "token_secret": "test-secret",
    "password_time_cost": 1,
    "password_memory_cost_kib": 8,
    "password_parallelism": 1,
}


@pytest.fixture(autouse=True)
def _isolated_settings_sources(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """Keep real environment variables and home YAML out of every test."""
    for name in list(os.environ):
        if name.startswith("SNAP_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(SnapSettings, "_config_path", tmp_path / "absent.yaml")


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """Return a SQLite URL for a fresh database file."""
    return f"sqlite:///{tmp_path / 'snap.db'}"


@pytest.fixture
def raw_config(sqlite_url: str) -> dict[str, Any]:
    """Return init settings for a development boot against SQLite."""
    return {
        "database": {"url": sqlite_url},
        "environment": {"profile": "development"},
        "logging": {"json_output": False},
        "auth": dict(FAST_AUTH),
    }
