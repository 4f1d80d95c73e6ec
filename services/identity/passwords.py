"""Password hashing backed by Argon2id."""

from __future__ import annotations

from argon2 import PasswordHasher as Argon2PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError


class PasswordHasher:
    """Hash and verify account passwords.

    Cost parameters default to argon2-cffi's recommended profile; tests pass
    cheaper values.
    """

    def __init__(
        self,
        *,
        time_cost: int | None = None,
        memory_cost: int | None = None,
        parallelism: int | None = None,
    ) -> None:
        overrides = {
            key: value
            for key, value in (
                ("time_cost", time_cost),
                ("memory_cost", memory_cost),
                ("parallelism", parallelism),
            )
            if value is not None
        }
        self._hasher = Argon2PasswordHasher(**overrides)

    def hash(self, password: str) -> str:
        """Return an encoded Argon2id hash for ``password``."""
        if not password:
            raise ValueError("password must not be empty")
        return self._hasher.hash(password)

    def verify(self, password_hash: str, password: str) -> bool:
        """Return ``True`` when ``password`` matches ``password_hash``."""
        try:
            return self._hasher.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        """Return ``True`` when the hash was made with outdated parameters."""
        return self._hasher.check_needs_rehash(password_hash)
