"""ORM sessions over the data store engine, one transaction per unit of work."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from packages.snap_shared.logging import fields

from .errors import normalize_store_error

logger = logging.getLogger(__name__)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Sessions keep loaded rows readable after commit and never autoflush."""
    return sessionmaker(engine, autoflush=False, expire_on_commit=False)


@contextmanager
def transactional_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Run the block in one transaction, committed on exit.

    Store errors are logged with their normalized code and re-raised after
    ``sessionmaker.begin`` rolls the transaction back.
    """
    try:
        with session_factory.begin() as session:
            yield session
    except SQLAlchemyError as exc:
        detail = normalize_store_error(exc)
        logger.warning(
            "store transaction rolled back",
            extra={
                fields.ERROR_CODE: detail.code,
                fields.ERROR_CATEGORY: detail.category.value,
            },
        )
        raise
