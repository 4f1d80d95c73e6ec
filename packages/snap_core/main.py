"""Snap command-line entrypoint implemented with Typer."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TypeVar

import typer

from packages.snap_shared import capabilities
from packages.snap_shared.config import SnapSettings
from packages.snap_shared.http import run_app
from packages.snap_shared.logging import configure_logging, get_logger

from .composer import ConfigurationError, compose
from .migrations import MigrationRunner, MigrationRunReport
from .registry import ServiceRegistry
from .reporting import StageOutcome, StartupReporter
from .seeding import SeedRunner, seed_specs_from_settings
from .startup import MIGRATION_STAGE, SEED_STAGE, realize_registry, run_startup

_LOGGER = get_logger(__name__)

SUCCESS_EXIT_CODE = 0
STAGE_FAILURE_EXIT_CODE = 1
CONFIGURATION_ERROR_EXIT_CODE = 2

T = TypeVar("T")


@dataclass(frozen=True)
class CliConfig:
    """Global CLI options shared by every command."""

    config_path: Path | None


app = typer.Typer(no_args_is_help=True, help="Snap service command-line interface")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        envvar="SNAP_CONFIG_FILE",
        help="YAML settings file (defaults to ~/.config/snap/snap.yaml)",
    ),
) -> None:
    """Store global options and install default logging."""
    configure_logging()
    ctx.obj = CliConfig(config_path=config)


@app.command("serve")
def serve(
    ctx: typer.Context,
    profile: str | None = typer.Option(
        None, help="Environment profile; overrides environment.profile"
    ),
) -> None:
    """Boot the service and serve HTTP until interrupted."""
    cfg = _require_config(ctx)
    result = _guard_configuration(
        lambda: run_startup(config_path=cfg.config_path, profile=profile)
    )
    settings = result.settings
    _configure_logging(settings)
    run_app(
        result.app,
        host=settings.http.host,
        port=settings.http.port,
        log_level=settings.logging.level.lower(),
    )


@app.command("migrate")
def migrate(ctx: typer.Context) -> None:
    """Apply outstanding schema migrations and exit."""
    registry = _realized_registry(_require_config(ctx))
    report = MigrationRunner().run(registry.resolve(capabilities.DATA_STORE))  # type: ignore[arg-type]
    _finish_migration(report, action="applied", revisions=report.applied)


@app.command("revert")
def revert(
    ctx: typer.Context,
    target: str | None = typer.Argument(
        None, help="Revision to keep; omit to revert every applied revision"
    ),
) -> None:
    """Revert applied migrations newer than TARGET."""
    registry = _realized_registry(_require_config(ctx))
    report = MigrationRunner().revert(
        registry.resolve(capabilities.DATA_STORE),  # type: ignore[arg-type]
        target,
    )
    _finish_migration(report, action="reverted", revisions=report.reverted)


@app.command("seed")
def seed(ctx: typer.Context) -> None:
    """Create missing baseline accounts and exit."""
    registry = _realized_registry(_require_config(ctx))
    settings: SnapSettings = registry.resolve(capabilities.SETTINGS)  # type: ignore[assignment]
    report = SeedRunner().seed(
        registry.resolve(capabilities.CREDENTIAL_MANAGER),  # type: ignore[arg-type]
        seed_specs_from_settings(settings.seed),
    )
    typer.echo(
        f"created: {len(report.created)}, existing: {len(report.existing)}, "
        f"failed: {len(report.failures)}"
    )
    if not report.succeeded:
        StartupReporter().report(
            SEED_STAGE,
            StageOutcome.failed(report.error, exception=report.exception),  # type: ignore[arg-type]
        )
        raise typer.Exit(code=STAGE_FAILURE_EXIT_CODE)
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


def _finish_migration(
    report: MigrationRunReport, *, action: str, revisions: tuple[str, ...]
) -> None:
    """Print the outcome and exit with the stage status."""
    typer.echo(f"{action}: {', '.join(revisions) or 'none'}")
    if report.error is not None:
        StartupReporter().report(
            MIGRATION_STAGE,
            StageOutcome.failed(report.error, exception=report.exception),
        )
        typer.echo(f"migration failed: {report.error.message}", err=True)
        raise typer.Exit(code=STAGE_FAILURE_EXIT_CODE)
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


def _realized_registry(cfg: CliConfig) -> ServiceRegistry:
    """Compose and realize the leaf services for one-shot commands."""
    registry = _guard_configuration(lambda: compose(config_path=cfg.config_path))
    _guard_configuration(lambda: realize_registry(registry))
    _configure_logging(registry.resolve(capabilities.SETTINGS))  # type: ignore[arg-type]
    return registry


def _guard_configuration(invoke: Callable[[], T]) -> T:
    """Map configuration failures to exit code 2."""
    try:
        return invoke()
    except ConfigurationError as exc:
        _LOGGER.error("configuration invalid: %s", exc)
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=CONFIGURATION_ERROR_EXIT_CODE) from exc


def _configure_logging(settings: SnapSettings) -> None:
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
    )


def _require_config(ctx: typer.Context) -> CliConfig:
    """Return required CLI config from Typer context."""
    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


if __name__ == "__main__":
    app()
