"""Boot orchestration: compose, assemble, migrate, seed, then build the pipeline."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fastapi import FastAPI

from packages.snap_shared import capabilities
from packages.snap_shared.config import SnapSettings
from packages.snap_shared.errors import codes, exception_to_error
from packages.snap_shared.logging import fields, log_context

from .assembler import assemble
from .composer import ConfigurationError, compose
from .migrations import MigrationRunner, MigrationRunReport
from .pipeline import RequestPipeline, build_pipeline
from .registry import ServiceRegistry
from .reporting import StageOutcome, StartupReporter
from .seeding import SeedRunner, SeedRunReport, seed_specs_from_settings

logger = logging.getLogger(__name__)

COMPOSITION_STAGE = "composition"
MIGRATION_STAGE = "migrations"
SEED_STAGE = "seed"
PIPELINE_STAGE = "pipeline"


@dataclass(frozen=True, slots=True)
class StartupResult:
    """Everything produced by one boot pass."""

    registry: ServiceRegistry
    pipeline: RequestPipeline
    app: FastAPI
    reporter: StartupReporter
    migration_report: MigrationRunReport | None
    seed_report: SeedRunReport | None

    @property
    def settings(self) -> SnapSettings:
        return self.registry.resolve(capabilities.SETTINGS)  # type: ignore[return-value]


def run_startup(
    raw_config: Mapping[str, Any] | None = None,
    *,
    config_path: str | Path | None = None,
    profile: str | None = None,
    run_migrations: bool | None = None,
    run_seed: bool | None = None,
    reporter: StartupReporter | None = None,
    composer: Callable[..., ServiceRegistry] = compose,
    assembler: Callable[[ServiceRegistry], ServiceRegistry] = assemble,
    migration_runner: MigrationRunner | None = None,
    seed_runner: SeedRunner | None = None,
    pipeline_builder: Callable[..., RequestPipeline] = build_pipeline,
) -> StartupResult:
    """Run the boot sequence in strict order.

    Migration and seed failures are reported and boot continues; seeding is
    still attempted after a failed migration.

    Raises:
        ConfigurationError: When settings are invalid or the registry cannot
            be realized.
    """
    reporter = reporter or StartupReporter()

    registry = realize_registry(
        assembler(composer(raw_config, config_path=config_path))
    )
    settings: SnapSettings = registry.resolve(capabilities.SETTINGS)  # type: ignore[assignment]
    reporter.report(COMPOSITION_STAGE, StageOutcome.succeeded())

    boot = settings.boot
    migration_report: MigrationRunReport | None = None
    if boot.run_migrations_on_startup if run_migrations is None else run_migrations:
        with log_context({fields.STAGE: MIGRATION_STAGE}):
            try:
                runner = migration_runner or MigrationRunner()
                migration_report = runner.run(registry.resolve(capabilities.DATA_STORE))  # type: ignore[arg-type]
            except Exception as exc:
                outcome = _stage_fault(exc, codes.MIGRATION_FAILED)
            else:
                outcome = _migration_outcome(migration_report)
        reporter.report(MIGRATION_STAGE, outcome)
    else:
        reporter.report(MIGRATION_STAGE, StageOutcome.skipped("disabled"))

    seed_report: SeedRunReport | None = None
    if boot.run_seed_on_startup if run_seed is None else run_seed:
        with log_context({fields.STAGE: SEED_STAGE}):
            try:
                seed_report = (seed_runner or SeedRunner()).seed(
                    registry.resolve(capabilities.CREDENTIAL_MANAGER),  # type: ignore[arg-type]
                    seed_specs_from_settings(settings.seed),
                )
            except Exception as exc:
                outcome = _stage_fault(exc, codes.SEED_FAILED)
            else:
                outcome = _seed_outcome(seed_report)
        reporter.report(SEED_STAGE, outcome)
    else:
        reporter.report(SEED_STAGE, StageOutcome.skipped("disabled"))

    pipeline = pipeline_builder(registry, profile)
    app = pipeline.create_app()
    app.state.startup_reporter = reporter
    reporter.report(
        PIPELINE_STAGE, StageOutcome.succeeded(", ".join(pipeline.stage_names))
    )
    logger.info(
        "service ready to serve",
        extra={
            fields.PROFILE: pipeline.profile,
            "failed_stages": [event.stage for event in reporter.failures()],
        },
    )
    return StartupResult(
        registry=registry,
        pipeline=pipeline,
        app=app,
        reporter=reporter,
        migration_report=migration_report,
        seed_report=seed_report,
    )


def realize_registry(registry: ServiceRegistry) -> ServiceRegistry:
    """Realize ``registry``, treating any factory failure as fatal configuration."""
    try:
        return registry.realize()
    except Exception as exc:
        raise ConfigurationError(f"service composition failed: {exc}") from exc


def _stage_fault(exc: Exception, code: str) -> StageOutcome:
    return StageOutcome.failed(exception_to_error(exc, code=code), exception=exc)


def _migration_outcome(report: MigrationRunReport) -> StageOutcome:
    if report.error is not None:
        return StageOutcome.failed(
            report.error,
            exception=report.exception,
            summary=f"failed at {report.failed_revision or 'ledger'}",
        )
    return StageOutcome.succeeded(
        f"{len(report.applied)} applied, {len(report.skipped)} already applied"
    )


def _seed_outcome(report: SeedRunReport) -> StageOutcome:
    summary = (
        f"{len(report.created)} created, {len(report.existing)} existing, "
        f"{len(report.failures)} failed"
    )
    if report.succeeded:
        return StageOutcome.succeeded(summary)
    return StageOutcome.failed(
        report.error or exception_to_error(RuntimeError(summary)),
        exception=report.exception,
        summary=summary,
    )
