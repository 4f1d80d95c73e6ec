"""Dispatcher messages and handlers for the identity service."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from packages.snap_shared.mapping import MappingProfile, ObjectMapper
from packages.snap_shared.messagebus import Notification, Request
from services.identity.domain import (
    Account,
    AccountDto,
    AccountNotFoundError,
    IssuedToken,
)
from services.identity.service import CredentialManager
from services.identity.tokens import TokenSigner
from services.mail.commands import SendEmailCommand


@dataclass(frozen=True)
class RegisterAccount(Request):
    """Create a new account; answered with its ``AccountDto``."""

    user_name: str
    email: str
    display_name: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class AuthenticateAccount(Request):
    """Exchange a login/password pair for an ``IssuedToken``."""

    user_name: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class GetAccount(Request):
    """Read one account by login."""

    user_name: str


@dataclass(frozen=True)
class AccountRegistered(Notification):
    """Published after a successful registration."""

    user_name: str
    email: str
    display_name: str


def register_account(
    request: RegisterAccount,
    credential_manager: CredentialManager,
    mapper: ObjectMapper,
) -> AccountDto:
    account = credential_manager.create(
        user_name=request.user_name,
        email=request.email,
        display_name=request.display_name,
        password=request.password,
    )
    return mapper.map(account, AccountDto)


def authenticate_account(
    request: AuthenticateAccount,
    credential_manager: CredentialManager,
    token_signer: TokenSigner,
) -> IssuedToken:
    account = credential_manager.verify_password(request.user_name, request.password)
    return token_signer.issue(account)


def get_account(
    request: GetAccount,
    credential_manager: CredentialManager,
    mapper: ObjectMapper,
) -> AccountDto:
    account = credential_manager.find_by_login(request.user_name)
    if account is None:
        raise AccountNotFoundError(request.user_name)
    return mapper.map(account, AccountDto)


def send_welcome_email(
    notification: AccountRegistered, dispatch: Callable[[Request], Any]
) -> None:
    """Greet a newly registered account with a ``SendEmailCommand``."""
    dispatch(
        SendEmailCommand(
            to=notification.email,
            subject="Welcome to Snap",
            body=(
                f"Hi {notification.display_name or notification.user_name},\n\n"
                "Your Snap account is ready."
            ),
        )
    )


REQUEST_HANDLERS = {
    RegisterAccount: register_account,
    AuthenticateAccount: authenticate_account,
    GetAccount: get_account,
}

NOTIFICATION_HANDLERS = {
    AccountRegistered: [send_welcome_email],
}

MAPPING_PROFILES = (MappingProfile(source=Account, target=AccountDto),)
