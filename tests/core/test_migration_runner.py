"""Tests for Alembic-driven migration ordering, idempotence, and isolation."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest
from sqlalchemy import inspect, text

import services.identity
from packages.snap_core.migrations import (
    VERSION_TABLE,
    MigrationExecutionError,
    MigrationOrderError,
    MigrationRunner,
    MigrationState,
    current_revision,
    load_migration_records,
)
from packages.snap_shared.config import DatabaseSettings
from packages.snap_shared.errors import ErrorCategory, codes
from resources.substrates.sql import DataStore

_IDENTITY_ENV = Path(services.identity.__file__).resolve().parent / "migrations" / "env.py"

_CREATE_CALLS = (
    "op.create_table('calls', sa.Column('seq', sa.Integer, primary_key=True), "
    "sa.Column('name', sa.String(16)))"
)


@pytest.fixture
def store(tmp_path: Path):
    data_store = DataStore.from_settings(
        DatabaseSettings(url=f"sqlite:///{tmp_path / 'migrations.db'}")
    )
    yield data_store
    data_store.dispose()


def _record_call(revision: str) -> str:
    return f"op.execute(\"INSERT INTO calls (name) VALUES ('{revision}')\")"


def _forget_call(revision: str) -> str:
    return f"op.execute(\"DELETE FROM calls WHERE name = '{revision}'\")"


def _script_location(tmp_path: Path, versions: list[tuple[str, str, str | None, str]]) -> str:
    """Write an Alembic script directory of ``(file, revision, down, upgrade)``."""
    location = tmp_path / "scripts"
    (location / "versions").mkdir(parents=True)
    shutil.copy(_IDENTITY_ENV, location / "env.py")
    for filename, revision, down, upgrade in versions:
        (location / "versions" / f"{filename}.py").write_text(
            "\n".join(
                [
                    f'"""{revision} step"""',
                    "from alembic import op",
                    "import sqlalchemy as sa",
                    f"revision = {revision!r}",
                    f"down_revision = {down!r}",
                    "branch_labels = None",
                    "depends_on = None",
                    "",
                    "def upgrade():",
                    f"    {upgrade}",
                    "",
                    "def downgrade():",
                    f"    {_forget_call(revision)}",
                    "",
                ]
            ),
            encoding="utf-8",
        )
    return str(location)


def _chain(tmp_path: Path, *, broken: str | None = None) -> str:
    """Three revisions a <- b <- c stored under names that sort against the chain."""
    upgrades = {
        "a": f"{_CREATE_CALLS}; {_record_call('a')}",
        "b": _record_call("b"),
        "c": _record_call("c"),
    }
    if broken is not None:
        upgrades[broken] = (
            "op.create_table('half_done', sa.Column('id', sa.Integer, primary_key=True)); "
            "raise RuntimeError('broken upgrade')"
        )
    return _script_location(
        tmp_path,
        [
            ("zz_first", "a", None, upgrades["a"]),
            ("mm_third", "c", "b", upgrades["c"]),
            ("aa_second", "b", "a", upgrades["b"]),
        ],
    )


def _calls(store: DataStore) -> list[str]:
    with store.engine.connect() as connection:
        return list(connection.scalars(text("SELECT name FROM calls ORDER BY seq")))


def _tables(store: DataStore) -> set[str]:
    return set(inspect(store.engine).get_table_names())


def test_load_migration_records_follows_chain_not_file_names(tmp_path: Path) -> None:
    """Records presented out of order are returned predecessor first."""
    records = load_migration_records(_chain(tmp_path))

    assert [record.revision for record in records] == ["a", "b", "c"]
    assert records[1].down_revision == "a"
    assert records[0].description == "a step"


@pytest.mark.parametrize(
    "versions",
    [
        [("one", "a", None, "pass"), ("two", "a", None, "pass")],
        [("one", "a", None, "pass"), ("two", "b", "missing", "pass")],
        [("one", "a", None, "pass"), ("two", "b", "a", "pass"), ("three", "c", "a", "pass")],
        [("one", "a", None, "pass"), ("two", "b", None, "pass")],
        [("one", "a", None, "pass"), ("two", "b", "c", "pass"), ("three", "c", "b", "pass")],
    ],
    ids=["duplicate", "missing-predecessor", "branch", "two-roots", "cycle"],
)
def test_load_migration_records_rejects_invalid_chains(tmp_path: Path, versions) -> None:
    """Only one linear chain from a single root is accepted."""
    with pytest.raises(MigrationOrderError):
        load_migration_records(_script_location(tmp_path, versions))


def test_run_applies_revisions_in_chain_order(tmp_path: Path, store: DataStore) -> None:
    """Application order follows predecessors, not file order."""
    report = MigrationRunner(_chain(tmp_path)).run(store)

    assert report.succeeded, report.error
    assert _calls(store) == ["a", "b", "c"]
    assert report.applied == ("a", "b", "c")
    assert current_revision(store) == "c"
    assert VERSION_TABLE in _tables(store)


def test_run_never_reapplies_recorded_revisions(tmp_path: Path, store: DataStore) -> None:
    """A second run against an up-to-date store changes nothing."""
    runner = MigrationRunner(_chain(tmp_path))
    runner.run(store)

    report = runner.run(store)

    assert _calls(store) == ["a", "b", "c"]
    assert report.applied == ()
    assert report.skipped == ("a", "b", "c")
    assert set(report.states.values()) == {MigrationState.APPLIED}


def test_failed_revision_rolls_back_its_changes_and_stops_the_run(
    tmp_path: Path, store: DataStore
) -> None:
    """A revision's DDL and its version row commit together or not at all."""
    report = MigrationRunner(_chain(tmp_path, broken="b")).run(store)

    assert not report.succeeded
    assert report.failed_revision == "b"
    assert report.states == {
        "a": MigrationState.APPLIED,
        "b": MigrationState.FAILED,
        "c": MigrationState.PENDING,
    }
    assert report.applied == ("a",)
    assert report.pending == ("c",)
    assert report.error is not None
    assert report.error.code == codes.MIGRATION_FAILED
    assert report.error.metadata["revision"] == "b"
    assert isinstance(report.exception, RuntimeError)
    assert "half_done" not in _tables(store)
    assert _calls(store) == ["a"]
    assert current_revision(store) == "a"


def test_failed_first_revision_leaves_no_version_row(tmp_path: Path, store: DataStore) -> None:
    report = MigrationRunner(_chain(tmp_path, broken="a")).run(store)

    assert report.failed_revision == "a"
    assert "half_done" not in _tables(store)
    assert current_revision(store) is None


def test_raise_for_failure_wraps_the_original_exception(
    tmp_path: Path, store: DataStore
) -> None:
    """Callers that want exceptions can opt in."""
    report = MigrationRunner(_chain(tmp_path, broken="a")).run(store)

    with pytest.raises(MigrationExecutionError) as exc_info:
        report.raise_for_failure()
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_run_reports_invalid_order_without_touching_the_store(
    tmp_path: Path, store: DataStore
) -> None:
    """Chain errors are reported, never raised."""
    location = _script_location(
        tmp_path, [("one", "a", None, "pass"), ("two", "b", "zzz", "pass")]
    )

    report = MigrationRunner(location).run(store)

    assert report.error is not None
    assert report.error.code == codes.MIGRATION_ORDER_INVALID
    assert VERSION_TABLE not in _tables(store)


def test_run_reports_unreachable_store(tmp_path: Path) -> None:
    """Connection failures become dependency errors with every revision pending."""
    unreachable = DataStore.from_settings(
        DatabaseSettings(url=f"sqlite:///{tmp_path / 'missing' / 'snap.db'}")
    )

    report = MigrationRunner(_chain(tmp_path)).run(unreachable)

    assert report.error is not None
    assert report.error.category is ErrorCategory.DEPENDENCY
    assert report.states == dict.fromkeys(("a", "b", "c"), MigrationState.PENDING)


def test_revert_walks_back_to_target(tmp_path: Path, store: DataStore) -> None:
    runner = MigrationRunner(_chain(tmp_path))
    runner.run(store)

    report = runner.revert(store, "a")

    assert report.succeeded, report.error
    assert report.reverted == ("c", "b")
    assert _calls(store) == ["a"]
    assert current_revision(store) == "a"


def test_revert_rejects_unknown_target(tmp_path: Path, store: DataStore) -> None:
    report = MigrationRunner(_chain(tmp_path)).revert(store, "nope")

    assert report.error is not None
    assert report.error.code == codes.MIGRATION_ORDER_INVALID


def test_identity_migrations_upgrade_and_revert(store: DataStore) -> None:
    """Bundled revisions build the identity schema and undo it."""
    runner = MigrationRunner()

    report = runner.run(store)

    assert report.succeeded, report.error
    assert report.applied == ("0001", "0002", "0003")
    assert {"users", "user_roles", "abouts"} <= _tables(store)
    gender = {
        column["name"]: column for column in inspect(store.engine).get_columns("abouts")
    }["gender"]
    assert "INT" in str(gender["type"]).upper()

    reverted = runner.revert(store, "0001")

    assert reverted.succeeded, reverted.error
    assert reverted.reverted == ("0003", "0002")
    assert "abouts" not in _tables(store)
    assert current_revision(store) == "0001"


def test_gender_conversion_preserves_existing_rows(store: DataStore) -> None:
    """Textual gender values map onto the integer enum."""
    runner = MigrationRunner()
    runner.run(store)
    runner.revert(store, "0002")
    with store.engine.begin() as connection:
        connection.execute(
            text(
                "INSERT INTO abouts (full_name, gender, bio) VALUES "
                "('Ada', 'Female', ''), ('Alan', 'Male', '')"
            )
        )

    report = runner.run(store)

    assert report.applied == ("0003",)
    with store.engine.connect() as connection:
        rows = connection.execute(
            text("SELECT full_name, gender FROM abouts ORDER BY full_name")
        ).all()
    assert [tuple(row) for row in rows] == [("Ada", 1), ("Alan", 0)]
