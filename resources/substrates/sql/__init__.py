"""SQL data store substrate shared by Snap services."""

from resources.substrates.sql.engine import create_store_engine
from resources.substrates.sql.errors import normalize_store_error
from resources.substrates.sql.health import ping
from resources.substrates.sql.session import (
    create_session_factory,
    transactional_session,
)
from resources.substrates.sql.store import DataStore

__all__ = [
    "DataStore",
    "create_session_factory",
    "create_store_engine",
    "normalize_store_error",
    "ping",
    "transactional_session",
]
