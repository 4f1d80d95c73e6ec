"""JSON error payloads returned at the HTTP boundary."""

from __future__ import annotations

from http import HTTPStatus

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field


def default_message_for_status(status_code: int) -> str:
    """Return the standard reason phrase for one status code."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Unexpected status"


class ApiResponse(BaseModel):
    """Generic status/message error body."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status_code: int = Field(alias="statusCode")
    message: str


class ApiExceptionResponse(ApiResponse):
    """Error body for unhandled faults; ``details`` only in development."""

    details: str | None = None


def api_error_response(
    status_code: int,
    message: str | None = None,
    *,
    details: str | None = None,
) -> JSONResponse:
    """Build a JSON error response with the shared error body shape."""
    body = ApiExceptionResponse(
        status_code=status_code,
        message=message or default_message_for_status(status_code),
        details=details,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )
