"""Account repository implementations."""

from __future__ import annotations

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from resources.substrates.sql import transactional_session
from services.identity.data.schema import user_roles, users
from services.identity.domain import (
    Account,
    AccountAlreadyExistsError,
    AccountRecord,
    normalize_user_name,
)
from services.identity.interfaces import AccountRepository


class InMemoryAccountRepository(AccountRepository):
    """Dictionary-backed account persistence for tests and local runs."""

    def __init__(self) -> None:
        self._records: dict[str, AccountRecord] = {}

    def get_by_user_name(self, user_name: str) -> AccountRecord | None:
        return self._records.get(normalize_user_name(user_name))

    def add(self, account: Account, *, password_hash: str) -> None:
        key = normalize_user_name(account.user_name)
        if key in self._records:
            raise AccountAlreadyExistsError(account.user_name)
        self._records[key] = AccountRecord(account=account, password_hash=password_hash)

    def count(self) -> int:
        """Return number of stored accounts."""
        return len(self._records)


class SqlAlchemyAccountRepository(AccountRepository):
    """SQL repository over the ``users`` and ``user_roles`` tables."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get_by_user_name(self, user_name: str) -> AccountRecord | None:
        """Read one account and its roles by normalized login."""
        with transactional_session(self._session_factory) as session:
            row = session.execute(
                select(users).where(
                    users.c.normalized_user_name == normalize_user_name(user_name)
                )
            ).mappings().first()
            if row is None:
                return None
            roles = session.scalars(
                select(user_roles.c.role)
                .where(user_roles.c.user_id == row["id"])
                .order_by(user_roles.c.role)
            ).all()
        return AccountRecord(
            account=Account(
                id=row["id"],
                user_name=row["user_name"],
                email=row["email"],
                display_name=row["display_name"],
                roles=tuple(roles),
                created_at=row["created_at"],
            ),
            password_hash=row["password_hash"],
        )

    def add(self, account: Account, *, password_hash: str) -> None:
        """Insert one account and its role rows in a single transaction."""
        try:
            with transactional_session(self._session_factory) as session:
                session.execute(
                    insert(users).values(
                        id=account.id,
                        user_name=account.user_name,
                        normalized_user_name=normalize_user_name(account.user_name),
                        email=account.email,
                        display_name=account.display_name,
                        password_hash=password_hash,
                        created_at=account.created_at,
                    )
                )
                if account.roles:
                    session.execute(
                        insert(user_roles),
                        [
                            {"user_id": account.id, "role": role}
                            for role in account.roles
                        ],
                    )
        except IntegrityError as exc:
            raise AccountAlreadyExistsError(account.user_name) from exc
