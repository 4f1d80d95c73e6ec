"""Alembic-driven schema migration runner.

Revisions live in a service-owned Alembic script directory and are applied
through ``alembic.command``. The version table ``snap_schema_migrations`` is
the ledger; each revision commits together with its version-row update, so a
revision is never marked applied without its changes.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Protocol

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext, MigrationInfo
from alembic.script import Script, ScriptDirectory
from sqlalchemy import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from packages.snap_shared.errors import ErrorDetail, codes, exception_to_error
from packages.snap_shared.logging import fields
from resources.substrates.sql import normalize_store_error

logger = logging.getLogger(__name__)

VERSION_TABLE = "snap_schema_migrations"
IDENTITY_SCRIPT_LOCATION = "services.identity:migrations"

AlembicCommand = Callable[[Config, str], None]


class MigrationOrderError(ValueError):
    """Raised when revisions do not form one linear ``down_revision`` chain."""


class MigrationExecutionError(RuntimeError):
    """Raised by ``MigrationRunReport.raise_for_failure`` for a failed run."""

    def __init__(self, message: str, *, detail: ErrorDetail) -> None:
        super().__init__(message)
        self.detail = detail


class MigrationState(str, Enum):
    """Lifecycle of one revision within a run."""

    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


class SupportsEngine(Protocol):
    """Anything exposing the SQLAlchemy engine of the persisted store."""

    engine: Engine


@dataclass(frozen=True, slots=True)
class MigrationRecord:
    """One uniquely named forward/reverse schema transformation."""

    revision: str
    down_revision: str | None
    description: str

    @classmethod
    def from_script(cls, script: Script) -> MigrationRecord:
        """Describe one Alembic revision script."""
        down = script.down_revision
        if isinstance(down, (tuple, list)):
            raise MigrationOrderError(
                f"revision '{script.revision}' merges {len(down)} revisions"
            )
        return cls(
            revision=script.revision,
            down_revision=down,
            description=(script.doc or script.revision).strip(),
        )


def build_config(
    script_location: str = IDENTITY_SCRIPT_LOCATION,
    *,
    connection: Connection | None = None,
    on_version_apply: Iterable[Callable[..., None]] = (),
) -> Config:
    """Return an in-memory Alembic config for one script directory."""
    config = Config()
    config.set_main_option("script_location", script_location)
    config.set_main_option("version_table", VERSION_TABLE)
    if connection is not None:
        config.attributes["connection"] = connection
    config.attributes["on_version_apply"] = tuple(on_version_apply)
    return config


def load_migration_records(
    script_location: str = IDENTITY_SCRIPT_LOCATION,
) -> tuple[MigrationRecord, ...]:
    """Return the revisions of ``script_location`` from base to head.

    Raises:
        MigrationOrderError: On duplicate revisions, missing predecessors,
            branches, several roots, cycles, or unloadable revision files.
    """
    try:
        # Alembic only warns about duplicates and missing predecessors.
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            scripts = ScriptDirectory.from_config(build_config(script_location))
            heads = scripts.get_heads()
            bases = scripts.get_bases()
            walked = list(scripts.walk_revisions("base", "heads"))
    except Exception as exc:
        raise MigrationOrderError(
            f"invalid revision graph in '{script_location}': {exc}"
        ) from exc

    if len(heads) > 1 or len(bases) > 1:
        raise MigrationOrderError(
            "expected one linear revision chain, found heads "
            f"{sorted(heads)} and roots {sorted(bases)}"
        )
    return tuple(MigrationRecord.from_script(script) for script in reversed(walked))


def current_revision(store: SupportsEngine) -> str | None:
    """Return the revision recorded in the version table, if any."""
    with store.engine.connect() as connection:
        context = MigrationContext.configure(
            connection, opts={"version_table": VERSION_TABLE}
        )
        return context.get_current_revision()


@dataclass(frozen=True)
class MigrationRunReport:
    """Typed outcome of one migration or revert pass."""

    states: Mapping[str, MigrationState] = field(default_factory=dict)
    applied: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    reverted: tuple[str, ...] = ()
    failed_revision: str | None = None
    error: ErrorDetail | None = None
    exception: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when no revision failed."""
        return self.error is None

    @property
    def pending(self) -> tuple[str, ...]:
        """Return revisions left unapplied."""
        return tuple(
            revision
            for revision, state in self.states.items()
            if state is MigrationState.PENDING
        )

    def raise_for_failure(self) -> None:
        """Raise ``MigrationExecutionError`` if the run failed."""
        if self.error is None:
            return
        target = self.failed_revision or "ledger"
        raise MigrationExecutionError(
            f"migration '{target}' failed: {self.error.message}",
            detail=self.error,
        ) from self.exception


class MigrationRunner:
    """Bring a store to head through Alembic, reporting instead of raising."""

    def __init__(
        self,
        script_location: str = IDENTITY_SCRIPT_LOCATION,
        *,
        upgrade_fn: AlembicCommand = command.upgrade,
        downgrade_fn: AlembicCommand = command.downgrade,
    ) -> None:
        self.script_location = script_location
        self._upgrade = upgrade_fn
        self._downgrade = downgrade_fn

    def run(self, store: SupportsEngine) -> MigrationRunReport:
        """Apply every revision above the recorded one. Never raises."""
        try:
            revisions = self._revisions()
        except MigrationOrderError as exc:
            return _failure({}, exc, code=codes.MIGRATION_ORDER_INVALID)

        states = dict.fromkeys(revisions, MigrationState.PENDING)
        try:
            done = _applied_through(revisions, current_revision(store))
        except SQLAlchemyError as exc:
            return _failure(states, exc)
        except MigrationOrderError as exc:
            return _failure(states, exc, code=codes.MIGRATION_ORDER_INVALID)

        for revision in done:
            states[revision] = MigrationState.APPLIED
        pending = revisions[len(done):]
        applied: list[str] = []

        def _on_apply(*, step: MigrationInfo, **_: Any) -> None:
            revision = step.up_revision_id
            states[revision] = MigrationState.APPLIED
            applied.append(revision)
            logger.info("migration applied", extra={fields.REVISION: revision})
            upcoming = pending[len(applied):]
            if upcoming:
                states[upcoming[0]] = MigrationState.APPLYING

        if pending:
            states[pending[0]] = MigrationState.APPLYING
            logger.info("applying migrations", extra={"revisions": list(pending)})
            try:
                with store.engine.connect() as connection:
                    self._upgrade(self._config(connection, _on_apply), "head")
            except Exception as exc:
                applied = self._reconcile(store, revisions, done, applied)
                failed = next((r for r in pending if r not in applied), None)
                for revision in pending:
                    states[revision] = (
                        MigrationState.APPLIED
                        if revision in applied
                        else MigrationState.PENDING
                    )
                if failed is not None:
                    states[failed] = MigrationState.FAILED
                return _failure(
                    states,
                    exc,
                    revision=failed,
                    applied=applied,
                    skipped=done,
                )

        return MigrationRunReport(
            states=states, applied=tuple(applied), skipped=tuple(done)
        )

    def revert(self, store: SupportsEngine, target: str | None = None) -> MigrationRunReport:
        """Revert applied revisions newer than ``target`` (all when ``None``).

        Never raises.
        """
        try:
            revisions = self._revisions()
        except MigrationOrderError as exc:
            return _failure({}, exc, code=codes.MIGRATION_ORDER_INVALID)
        if target is not None and target not in revisions:
            return _failure(
                {},
                MigrationOrderError(f"unknown target revision '{target}'"),
                code=codes.MIGRATION_ORDER_INVALID,
            )

        try:
            done = _applied_through(revisions, current_revision(store))
        except SQLAlchemyError as exc:
            return _failure({}, exc)
        except MigrationOrderError as exc:
            return _failure({}, exc, code=codes.MIGRATION_ORDER_INVALID)

        states = {
            revision: MigrationState.APPLIED if revision in done else MigrationState.PENDING
            for revision in revisions
        }
        keep = 0 if target is None else revisions.index(target) + 1
        doomed = tuple(reversed(done[keep:]))
        if not doomed:
            return MigrationRunReport(states=states)

        reverted: list[str] = []

        def _on_revert(*, step: MigrationInfo, **_: Any) -> None:
            revision = step.up_revision_id
            states[revision] = MigrationState.PENDING
            reverted.append(revision)
            logger.info("migration reverted", extra={fields.REVISION: revision})

        try:
            with store.engine.connect() as connection:
                self._downgrade(self._config(connection, _on_revert), target or "base")
        except Exception as exc:
            failed = next((r for r in doomed if r not in reverted), None)
            if failed is not None:
                states[failed] = MigrationState.FAILED
            return _failure(states, exc, revision=failed, reverted=reverted)

        return MigrationRunReport(states=states, reverted=tuple(reverted))

    def _revisions(self) -> tuple[str, ...]:
        return tuple(
            record.revision for record in load_migration_records(self.script_location)
        )

    def _config(self, connection: Connection, callback: Callable[..., None]) -> Config:
        return build_config(
            self.script_location, connection=connection, on_version_apply=[callback]
        )

    @staticmethod
    def _reconcile(
        store: SupportsEngine,
        revisions: Sequence[str],
        done: Sequence[str],
        applied: list[str],
    ) -> list[str]:
        """Return revisions the version table shows applied after a failure."""
        try:
            now = _applied_through(revisions, current_revision(store))
        except (SQLAlchemyError, MigrationOrderError):
            return applied
        return list(now[len(done):])


def _applied_through(
    revisions: Sequence[str], current: str | None
) -> tuple[str, ...]:
    if current is None:
        return ()
    if current not in revisions:
        raise MigrationOrderError(f"store is at unknown revision '{current}'")
    return tuple(revisions[: revisions.index(current) + 1])


def _failure(
    states: Mapping[str, MigrationState],
    exc: BaseException,
    *,
    code: str | None = None,
    revision: str | None = None,
    applied: Sequence[str] = (),
    skipped: Sequence[str] = (),
    reverted: Sequence[str] = (),
) -> MigrationRunReport:
    if isinstance(exc, SQLAlchemyError):
        detail = normalize_store_error(exc)
    else:
        detail = exception_to_error(exc, code=codes.MIGRATION_FAILED)
    overrides: dict[str, object] = {}
    if code is not None:
        overrides["code"] = code
    if revision is not None:
        overrides["metadata"] = {**detail.metadata, fields.REVISION: revision}
    return MigrationRunReport(
        states=dict(states),
        applied=tuple(applied),
        skipped=tuple(skipped),
        reverted=tuple(reverted),
        failed_revision=revision,
        error=replace(detail, **overrides),
        exception=exc,
    )
