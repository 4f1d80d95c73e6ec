"""Public API for Snap boot orchestration."""

from packages.snap_core.assembler import assemble, build_dispatcher
from packages.snap_core.composer import ConfigurationError, compose
from packages.snap_core.migrations import (
    MigrationExecutionError,
    MigrationOrderError,
    MigrationRecord,
    MigrationRunner,
    MigrationRunReport,
    MigrationState,
    build_config,
    current_revision,
    load_migration_records,
)
from packages.snap_core.pipeline import PipelineStage, RequestPipeline, build_pipeline
from packages.snap_core.registry import (
    MissingCapabilityError,
    RegistryError,
    RegistryFrozenError,
    ServiceRegistry,
)
from packages.snap_core.reporting import (
    StageOutcome,
    StageStatus,
    StartupEvent,
    StartupReporter,
)
from packages.snap_core.seeding import (
    SeedResult,
    SeedRunner,
    SeedRunReport,
    SeedSpec,
    SeedStatus,
    seed_specs_from_settings,
)
from packages.snap_core.startup import StartupResult, realize_registry, run_startup

__all__ = [
    "ConfigurationError",
    "MigrationExecutionError",
    "MigrationOrderError",
    "MigrationRecord",
    "MigrationRunReport",
    "MigrationRunner",
    "MigrationState",
    "MissingCapabilityError",
    "PipelineStage",
    "RegistryError",
    "RegistryFrozenError",
    "RequestPipeline",
    "SeedResult",
    "SeedRunReport",
    "SeedRunner",
    "SeedSpec",
    "SeedStatus",
    "ServiceRegistry",
    "StageOutcome",
    "StageStatus",
    "StartupEvent",
    "StartupReporter",
    "StartupResult",
    "assemble",
    "build_dispatcher",
    "build_config",
    "build_pipeline",
    "compose",
    "current_revision",
    "load_migration_records",
    "realize_registry",
    "run_startup",
    "seed_specs_from_settings",
]
