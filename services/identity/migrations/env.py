"""Alembic environment for identity service schema migrations."""

from __future__ import annotations

from alembic import context
from sqlalchemy import create_engine, pool

from packages.snap_shared.config import load_settings
from services.identity.data.schema import metadata

config = context.config

target_metadata = metadata

version_table = config.get_main_option("version_table", "snap_schema_migrations")
on_version_apply = config.attributes.get("on_version_apply", ())


def run_migrations_offline() -> None:
    """Run migrations without a live DB connection."""
    context.configure(
        url=load_settings().database.url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        version_table=version_table,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations on the caller's connection, or a settings-built one."""
    connection = config.attributes.get("connection")
    if connection is not None:
        _run_on(connection)
        return

    connectable = create_engine(load_settings().database.url, poolclass=pool.NullPool)
    with connectable.connect() as owned:
        _run_on(owned)


def _run_on(connection) -> None:
    # Each revision and its version-row update commit together.
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        version_table=version_table,
        transaction_per_migration=True,
        on_version_apply=on_version_apply,
    )

    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
