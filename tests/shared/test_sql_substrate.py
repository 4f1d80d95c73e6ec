"""Tests for the SQL data store substrate."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from packages.snap_shared.config import DatabaseSettings
from packages.snap_shared.errors import ErrorCategory, codes
from resources.substrates.sql import (
    DataStore,
    normalize_store_error,
    transactional_session,
)


def test_normalize_store_error_maps_integrity_to_conflict() -> None:
    """Unique violations should surface as already-exists conflicts."""
    error = normalize_store_error(IntegrityError("INSERT", {}, Exception("dup")))

    assert error.category is ErrorCategory.CONFLICT
    assert error.code == codes.ALREADY_EXISTS


def test_normalize_store_error_maps_operational_to_unavailable() -> None:
    """Connectivity failures should be retryable dependency errors."""
    error = normalize_store_error(OperationalError("SELECT 1", {}, Exception("down")))

    assert error.category is ErrorCategory.DEPENDENCY
    assert error.code == codes.DEPENDENCY_UNAVAILABLE
    assert error.metadata["cause"] == "down"


def test_normalize_store_error_maps_programming_to_dependency_failure() -> None:
    """Statement errors should be non-retryable dependency failures."""
    error = normalize_store_error(ProgrammingError("SELECT", {}, Exception("syntax")))

    assert error.code == codes.DEPENDENCY_FAILURE
    assert error.retryable is False


def test_data_store_is_healthy_for_reachable_sqlite(tmp_path: Path) -> None:
    """A writable SQLite file should answer the health ping."""
    store = DataStore.from_settings(
        DatabaseSettings(url=f"sqlite:///{tmp_path / 'health.db'}")
    )
    try:
        assert store.is_healthy()
    finally:
        store.dispose()


def test_data_store_is_unhealthy_for_unreachable_sqlite(tmp_path: Path) -> None:
    """A database in a missing directory cannot be opened."""
    store = DataStore.from_settings(
        DatabaseSettings(url=f"sqlite:///{tmp_path / 'missing' / 'health.db'}")
    )

    assert not store.is_healthy()


def test_sqlite_ddl_rolls_back_with_its_transaction(tmp_path: Path) -> None:
    """DDL on SQLite should participate in the surrounding transaction."""
    store = DataStore.from_settings(
        DatabaseSettings(url=f"sqlite:///{tmp_path / 'ddl.db'}")
    )
    try:
        try:
            with store.engine.begin() as connection:
                connection.execute(text("CREATE TABLE scratch (id INTEGER)"))
                raise RuntimeError("abort")
        except RuntimeError:
            pass

        with store.engine.connect() as connection:
            tables = connection.execute(
                text("SELECT name FROM sqlite_master WHERE type = 'table'")
            ).scalars().all()
        assert "scratch" not in tables
    finally:
        store.dispose()


def test_transactional_session_rolls_back_and_logs_store_errors(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """A failed unit of work leaves nothing behind and logs its error code."""
    store = DataStore.from_settings(
        DatabaseSettings(url=f"sqlite:///{tmp_path / 'session.db'}")
    )
    try:
        with store.engine.begin() as connection:
            connection.execute(text("CREATE TABLE names (name TEXT PRIMARY KEY)"))

        with caplog.at_level(logging.WARNING, logger="resources.substrates.sql.session"):
            with pytest.raises(IntegrityError):
                with transactional_session(store.session_factory) as session:
                    session.execute(text("INSERT INTO names VALUES ('ada')"))
                    session.execute(text("INSERT INTO names VALUES ('ada')"))

        with transactional_session(store.session_factory) as session:
            assert session.scalars(text("SELECT name FROM names")).all() == []
        [record] = caplog.records
        assert record.error_code == codes.ALREADY_EXISTS
    finally:
        store.dispose()
