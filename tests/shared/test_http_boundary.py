"""Tests for the shared HTTP boundary: error bodies, validation, auth stages."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from starlette.middleware import Middleware
from starlette.middleware.authentication import AuthenticationMiddleware

from packages.snap_shared.http import (
    AuthorizationMiddleware,
    BearerTokenBackend,
    ErrorTranslationMiddleware,
    ValidationErrorInterceptor,
    VerifiedIdentity,
    authentication_error_response,
    create_app,
    format_validation_errors,
)


class _Body(BaseModel):
    name: str = Field(min_length=3)
    age: int = Field(ge=0)


def _verify(token: str) -> VerifiedIdentity:
    if token == "admin-token":
        return VerifiedIdentity(user_name="admin", roles=("Admin",))
    if token == "user-token":
        return VerifiedIdentity(user_name="user")
    raise ValueError("invalid token")


def _app(*, include_details: bool = False) -> FastAPI:
    app = create_app(
        middleware=[
            Middleware(ErrorTranslationMiddleware, include_details=include_details),
            Middleware(
                AuthenticationMiddleware,
                backend=BearerTokenBackend(_verify),
                on_error=authentication_error_response,
            ),
            Middleware(
                AuthorizationMiddleware,
                rules={"/admin": ["Admin"], "/me": []},
            ),
        ],
        exception_handlers={RequestValidationError: ValidationErrorInterceptor()},
    )

    @app.post("/items")
    def create_item(body: _Body) -> dict[str, str]:
        return {"name": body.name}

    @app.get("/boom")
    def boom() -> None:
        raise RuntimeError("kaboom")

    @app.get("/me")
    def me(request: Request) -> dict[str, str]:
        return {"user": request.user.username}

    @app.get("/admin/panel")
    def admin_panel() -> dict[str, bool]:
        return {"ok": True}

    return app


def test_format_validation_errors_flattens_locations() -> None:
    """Location roots should be dropped and nested paths dotted."""
    messages = format_validation_errors(
        [
            {"loc": ("body", "address", "zip"), "msg": "Field required"},
            {"loc": ("query", "limit"), "msg": "Input should be a valid integer"},
            {"loc": (), "msg": "Invalid body"},
        ]
    )

    assert messages == [
        "address.zip: Field required",
        "limit: Input should be a valid integer",
        "Invalid body",
    ]


def test_validation_interceptor_returns_flat_error_list_with_400() -> None:
    """Two invalid fields should produce exactly two error strings."""
    client = TestClient(_app())

    response = client.post("/items", json={"name": "x", "age": -1})

    assert response.status_code == 400
    body = response.json()
    assert list(body) == ["Erorrs"]
    assert len(body["Erorrs"]) == 2
    assert all(isinstance(message, str) for message in body["Erorrs"])


def test_error_translation_hides_details_outside_development() -> None:
    """Unhandled faults should become a generic JSON 500."""
    client = TestClient(_app(), raise_server_exceptions=False)

    response = client.get("/boom")

    assert response.status_code == 500
    assert response.json() == {
        "statusCode": 500,
        "message": "Internal Server Error",
    }


def test_error_translation_includes_details_in_development() -> None:
    """Development error bodies should name the exception."""
    client = TestClient(_app(include_details=True), raise_server_exceptions=False)

    response = client.get("/boom")

    assert response.status_code == 500
    assert response.json()["details"] == "RuntimeError: kaboom"


def test_authorization_requires_authentication_for_protected_prefix() -> None:
    """Anonymous calls to protected paths should get 401."""
    client = TestClient(_app())

    assert client.get("/me").status_code == 401


def test_authentication_rejects_invalid_bearer_token() -> None:
    """Invalid tokens should be rejected by the authentication stage."""
    client = TestClient(_app())

    response = client.get("/me", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401
    assert response.json()["message"] == "invalid token"


def test_authorization_enforces_roles() -> None:
    """Role rules should admit holders and forbid everyone else."""
    client = TestClient(_app())

    user = client.get("/admin/panel", headers={"Authorization": "Bearer user-token"})
    admin = client.get("/admin/panel", headers={"Authorization": "Bearer admin-token"})
    me = client.get("/me", headers={"Authorization": "Bearer user-token"})

    assert user.status_code == 403
    assert admin.status_code == 200
    assert me.json() == {"user": "user"}
