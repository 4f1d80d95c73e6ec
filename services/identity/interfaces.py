"""Protocol interfaces for identity persistence."""

from __future__ import annotations

from typing import Protocol

from services.identity.domain import Account, AccountRecord


class AccountRepository(Protocol):
    """Protocol for account persistence keyed by normalized login."""

    def get_by_user_name(self, user_name: str) -> AccountRecord | None:
        """Return one account record by login or ``None``."""

    def add(self, account: Account, *, password_hash: str) -> None:
        """Insert one account with its roles.

        Raises:
            AccountAlreadyExistsError: When the login is already taken.
        """
