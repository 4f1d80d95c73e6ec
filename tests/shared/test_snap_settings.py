"""Tests for pydantic-settings-backed Snap configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from packages.snap_shared.config import is_development_profile, load_settings


def _write_yaml(path: Path, *lines: str) -> Path:
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


def test_load_settings_uses_snap_precedence_cascade(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Init params should override env, env should override YAML, then defaults."""
    config_file = _write_yaml(
        tmp_path / "snap.yaml",
        "database:",
        "  url: sqlite:///from-yaml.db",
        "  pool_size: 7",
        "logging:",
        "  level: WARNING",
        "http:",
        "  port: 9001",
    )
    monkeypatch.setenv("SNAP_LOGGING__LEVEL", "ERROR")
    monkeypatch.setenv("SNAP_HTTP__PORT", "9002")

    settings = load_settings(
        {"logging": {"level": "DEBUG"}},
        config_path=config_file,
    )

    assert settings.logging.level == "DEBUG"
    assert settings.http.port == 9002
    assert settings.database.url == "sqlite:///from-yaml.db"
    assert settings.database.pool_size == 7
    assert settings.environment.profile == "production"


def test_load_settings_reads_database_url_from_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """The nested ``__`` delimiter should map env vars onto nested groups."""
    monkeypatch.setenv("SNAP_DATABASE__URL", "sqlite:///env.db")
    monkeypatch.setenv("SNAP_ENVIRONMENT__PROFILE", "Development")

    settings = load_settings()

    assert settings.database.url == "sqlite:///env.db"
    assert settings.environment.is_development


def test_load_settings_requires_database_url() -> None:
    """A missing data store URL has no safe default and must fail."""
    with pytest.raises(ValidationError) as exc_info:
        load_settings()

    assert any(error["loc"][0] == "database" for error in exc_info.value.errors())


@pytest.mark.parametrize("url", ["", "   ", "not a url"])
def test_load_settings_rejects_malformed_database_url(url: str) -> None:
    """Blank or unparseable URLs should be rejected during validation."""
    with pytest.raises(ValidationError):
        load_settings({"database": {"url": url}})


def test_default_seed_settings_declare_admin_account() -> None:
    """Defaults should seed one administrator account."""
    settings = load_settings({"database": {"url": "sqlite://"}})

    (account,) = settings.seed.accounts
    assert account.user_name == "admin"
    assert account.roles == ["Admin"]
    assert "Pa$$" not in repr(account)


@pytest.mark.parametrize(
    ("profile", "expected"),
    [
        ("development", True),
        ("DEVELOPMENT", True),
        (" Development ", True),
        ("production", False),
        ("staging", False),
        ("dev", False),
    ],
)
def test_is_development_profile_ignores_case(profile: str, expected: bool) -> None:
    """Only the development profile enables development-only stages."""
    assert is_development_profile(profile) is expected
