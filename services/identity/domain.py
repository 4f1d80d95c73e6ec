"""Domain contracts for accounts, roles, and issued credentials."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field


class IdentityError(Exception):
    """Base error for identity operations."""


class AccountAlreadyExistsError(IdentityError):
    """Raised when an account with the same login already exists."""

    def __init__(self, user_name: str) -> None:
        super().__init__(f"account '{user_name}' already exists")
        self.user_name = user_name


class AccountNotFoundError(IdentityError):
    """Raised when no account matches a login."""

    def __init__(self, user_name: str) -> None:
        super().__init__(f"account '{user_name}' was not found")
        self.user_name = user_name


class InvalidCredentialsError(IdentityError):
    """Raised when a login/password pair does not match."""


class InvalidTokenError(ValueError):
    """Raised when a bearer token is malformed, forged, or expired."""


class Gender(IntEnum):
    """Profile gender stored as an integer column."""

    MALE = 0
    FEMALE = 1


class Account(BaseModel):
    """One registered account without its credential material."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    user_name: str = Field(min_length=1)
    email: str
    display_name: str
    roles: tuple[str, ...] = ()
    created_at: datetime


class AccountRecord(BaseModel):
    """Persisted account row including its password hash."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    account: Account
    password_hash: str


class AccountDto(BaseModel):
    """Transport representation of one account."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_name: str
    email: str
    display_name: str
    roles: list[str]


class IssuedToken(BaseModel):
    """Bearer token returned by a successful login."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int


def normalize_user_name(user_name: str) -> str:
    """Return the case-insensitive lookup key for a login."""
    return user_name.strip().upper()


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(timezone.utc)
