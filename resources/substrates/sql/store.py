"""Data store runtime handle registered under the ``data-store`` capability."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from packages.snap_shared.config import DatabaseSettings

from .engine import create_store_engine
from .health import ping
from .session import create_session_factory


@dataclass(frozen=True)
class DataStore:
    """Engine plus session factory for the primary persisted store."""

    engine: Engine
    session_factory: sessionmaker[Session]
    health_timeout_seconds: float = 1.0

    @classmethod
    def from_settings(cls, config: DatabaseSettings) -> "DataStore":
        """Build the store handle without opening a connection."""
        engine = create_store_engine(config)
        return cls(
            engine=engine,
            session_factory=create_session_factory(engine),
            health_timeout_seconds=config.health_timeout_seconds,
        )

    def is_healthy(self) -> bool:
        """Return ``True`` when the backing database is reachable."""
        return ping(self.engine, timeout_seconds=self.health_timeout_seconds)

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
