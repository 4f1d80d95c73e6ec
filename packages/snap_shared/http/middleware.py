"""ASGI middleware used as request pipeline stages."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from starlette.authentication import (
    AuthCredentials,
    AuthenticationBackend,
    AuthenticationError,
    SimpleUser,
)
from starlette.requests import HTTPConnection
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from packages.snap_shared.logging import fields

from .responses import api_error_response

logger = logging.getLogger(__name__)

AUTHENTICATED_SCOPE = "authenticated"


class ErrorTranslationMiddleware:
    """Translate unhandled faults from every inner stage into JSON 500 bodies.

    ``include_details`` adds the exception type and message; it is only
    enabled for the development profile.
    """

    def __init__(self, app: ASGIApp, *, include_details: bool = False) -> None:
        self.app = app
        self.include_details = include_details

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            logger.exception(
                "unhandled request failure",
                extra={
                    fields.METHOD: scope.get("method", ""),
                    fields.PATH: scope.get("path", ""),
                },
            )
            if response_started:
                # An inner stage already answered (e.g. the diagnostic page).
                return
            details = f"{type(exc).__name__}: {exc}" if self.include_details else None
            response = api_error_response(500, details=details)
            await response(scope, receive, send)


@dataclass(frozen=True)
class VerifiedIdentity:
    """Identity extracted from a valid bearer token."""

    user_name: str
    roles: tuple[str, ...] = ()


TokenVerifier = Callable[[str], VerifiedIdentity]


class BearerTokenBackend(AuthenticationBackend):
    """Authenticate ``Authorization: Bearer <token>`` headers.

    Requests without the header stay anonymous; malformed or invalid tokens
    raise ``AuthenticationError``. ``verify`` raises ``ValueError`` for
    tokens it rejects.
    """

    def __init__(self, verify: TokenVerifier) -> None:
        self._verify = verify

    async def authenticate(
        self, conn: HTTPConnection
    ) -> tuple[AuthCredentials, SimpleUser] | None:
        header = conn.headers.get("authorization")
        if not header:
            return None
        scheme, _, credentials = header.partition(" ")
        if scheme.lower() != "bearer" or not credentials.strip():
            raise AuthenticationError("unsupported authorization scheme")
        try:
            identity = self._verify(credentials.strip())
        except ValueError as exc:
            raise AuthenticationError(str(exc)) from exc
        return (
            AuthCredentials([AUTHENTICATED_SCOPE, *identity.roles]),
            SimpleUser(identity.user_name),
        )


def authentication_error_response(conn: HTTPConnection, exc: AuthenticationError) -> Response:
    """``on_error`` hook for Starlette's ``AuthenticationMiddleware``."""
    del conn
    return api_error_response(401, str(exc) or None)


class AuthorizationMiddleware:
    """Enforce path-prefix role rules against the authenticated scopes.

    ``rules`` maps a path prefix to the roles allowed to reach it. An empty
    role list admits any authenticated caller. The longest matching prefix
    wins; unmatched paths pass through.
    """

    def __init__(self, app: ASGIApp, *, rules: Mapping[str, Sequence[str]]) -> None:
        self.app = app
        self.rules = sorted(
            ((prefix, tuple(roles)) for prefix, roles in rules.items()),
            key=lambda item: len(item[0]),
            reverse=True,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        required = self._match(scope.get("path", ""))
        if required is not None:
            granted = set(getattr(scope.get("auth"), "scopes", ()) or ())
            if AUTHENTICATED_SCOPE not in granted:
                await api_error_response(401)(scope, receive, send)
                return
            if required and not granted.intersection(required):
                await api_error_response(403)(scope, receive, send)
                return

        await self.app(scope, receive, send)

    def _match(self, path: str) -> tuple[str, ...] | None:
        for prefix, roles in self.rules:
            if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
                return roles
        return None
