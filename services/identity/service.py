"""Credential management over the account repository."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from packages.snap_shared.ids import generate_ulid_str
from packages.snap_shared.logging import fields
from services.identity.domain import (
    Account,
    InvalidCredentialsError,
    utc_now,
)
from services.identity.interfaces import AccountRepository
from services.identity.passwords import PasswordHasher

logger = logging.getLogger(__name__)


class CredentialManager:
    """Create accounts and check their passwords.

    Logins are matched case-insensitively; the repository stores a normalized
    key alongside the login as entered.
    """

    def __init__(
        self,
        *,
        repository: AccountRepository,
        hasher: PasswordHasher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._hasher = hasher
        self._clock = clock

    def find_by_login(self, user_name: str) -> Account | None:
        """Return the account for ``user_name`` or ``None``."""
        record = self._repository.get_by_user_name(user_name)
        return None if record is None else record.account

    def create(
        self,
        *,
        user_name: str,
        email: str,
        display_name: str,
        password: str,
        roles: Iterable[str] = (),
    ) -> Account:
        """Persist a new account with a hashed password.

        Raises:
            AccountAlreadyExistsError: When the login is already taken.
            ValueError: When the login or password is blank.
        """
        if not user_name.strip():
            raise ValueError("user name must not be blank")
        account = Account(
            id=generate_ulid_str(),
            user_name=user_name.strip(),
            email=email.strip(),
            display_name=display_name.strip(),
            roles=tuple(dict.fromkeys(role.strip() for role in roles if role.strip())),
            created_at=self._clock(),
        )
        self._repository.add(account, password_hash=self._hasher.hash(password))
        logger.info(
            "account created",
            extra={fields.USER_NAME: account.user_name},
        )
        return account

    def verify_password(self, user_name: str, password: str) -> Account:
        """Return the account when ``password`` matches its stored hash.

        Raises:
            InvalidCredentialsError: For an unknown login or a wrong password.
        """
        record = self._repository.get_by_user_name(user_name)
        if record is None or not self._hasher.verify(record.password_hash, password):
            raise InvalidCredentialsError("invalid user name or password")
        return record.account
