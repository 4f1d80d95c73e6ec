"""SQLAlchemy engine construction for the primary data store."""

from __future__ import annotations

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url

from packages.snap_shared.config import DatabaseSettings


def create_store_engine(config: DatabaseSettings) -> Engine:
    """Construct a configured SQLAlchemy engine for the configured backend.

    Pool and connect options only apply to server backends; SQLite engines
    get pysqlite's transaction handling replaced so DDL participates in
    ``BEGIN``/``COMMIT`` like every other statement.
    """
    url = make_url(config.url)
    if url.get_backend_name() == "sqlite":
        engine = create_engine(url)
        _enable_sqlite_transactional_ddl(engine)
        return engine

    connect_args: dict[str, object] = {}
    if url.get_backend_name() == "postgresql":
        connect_args = {
            "connect_timeout": int(config.connect_timeout_seconds),
            "sslmode": config.sslmode,
        }
    return create_engine(
        url,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout_seconds,
        pool_pre_ping=config.pool_pre_ping,
        connect_args=connect_args,
    )


def _enable_sqlite_transactional_ddl(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection) -> None:
        connection.exec_driver_sql("BEGIN")
