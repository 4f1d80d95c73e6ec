"""HTTP routes for account registration, login, and profile lookup."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from packages.snap_shared import capabilities
from packages.snap_shared.http import api_error_response
from packages.snap_shared.logging import fields
from packages.snap_shared.messagebus import MessageBus
from services.identity.domain import (
    AccountAlreadyExistsError,
    AccountDto,
    AccountNotFoundError,
    InvalidCredentialsError,
    IssuedToken,
)
from services.identity.handlers import (
    AccountRegistered,
    AuthenticateAccount,
    GetAccount,
    RegisterAccount,
)

logger = logging.getLogger(__name__)


class RegisterAccountBody(BaseModel):
    """Inbound registration payload."""

    model_config = ConfigDict(extra="forbid")

    user_name: str = Field(min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    email: str = Field(min_length=3, max_length=256, pattern=r"^[^@\s]+@[^@\s]+$")
    display_name: str = Field(default="", max_length=256)
    password: str = Field(min_length=8, max_length=256)


class LoginBody(BaseModel):
    """Inbound login payload."""

    model_config = ConfigDict(extra="forbid")

    user_name: str = Field(min_length=1)
    password: str = Field(min_length=1)


def get_dispatcher(request: Request) -> MessageBus:
    """Resolve the command dispatcher from the application's registry."""
    return request.app.state.registry.resolve(capabilities.COMMAND_DISPATCHER)


def build_router() -> APIRouter:
    """Build the ``/api/accounts`` router."""
    router = APIRouter(prefix="/api/accounts", tags=["accounts"])

    @router.post("/register", status_code=201, response_model=AccountDto)
    def register(
        body: RegisterAccountBody, dispatcher: MessageBus = Depends(get_dispatcher)
    ) -> AccountDto | JSONResponse:
        try:
            account = dispatcher.send(
                RegisterAccount(
                    user_name=body.user_name,
                    email=body.email,
                    display_name=body.display_name,
                    password=body.password,
                )
            )
        except AccountAlreadyExistsError as exc:
            return api_error_response(409, str(exc))
        dispatcher.publish(
            AccountRegistered(
                user_name=account.user_name,
                email=account.email,
                display_name=account.display_name,
            )
        )
        return account

    @router.post("/login", response_model=IssuedToken)
    def login(
        body: LoginBody, dispatcher: MessageBus = Depends(get_dispatcher)
    ) -> IssuedToken | JSONResponse:
        try:
            return dispatcher.send(
                AuthenticateAccount(user_name=body.user_name, password=body.password)
            )
        except InvalidCredentialsError:
            logger.info("login rejected", extra={fields.USER_NAME: body.user_name})
            return api_error_response(401, "invalid user name or password")

    @router.get("/me", response_model=AccountDto)
    def me(
        request: Request, dispatcher: MessageBus = Depends(get_dispatcher)
    ) -> AccountDto | JSONResponse:
        try:
            return dispatcher.send(GetAccount(user_name=request.user.username))
        except AccountNotFoundError as exc:
            return api_error_response(404, str(exc))

    return router
