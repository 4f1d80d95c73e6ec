"""Request-model validation shaping.

Whenever request binding fails, the route handler is never invoked; the
interceptor answers 400 with a flat list of human-readable messages.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from packages.snap_shared.logging import fields

logger = logging.getLogger(__name__)

# Wire name kept as published by the existing API contract.
VALIDATION_ERRORS_FIELD = "Erorrs"

_LOCATION_ROOTS = frozenset({"body", "query", "path", "header", "cookie"})


class ValidationErrorResponse(BaseModel):
    """Structured 400 payload: always a flat list of strings."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    errors: list[str] = Field(alias=VALIDATION_ERRORS_FIELD)


def format_validation_errors(errors: Iterable[Mapping[str, Any]]) -> list[str]:
    """Flatten pydantic error entries into one message per failed constraint."""
    messages: list[str] = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ())]
        if location and location[0] in _LOCATION_ROOTS:
            location = location[1:]
        message = str(error.get("msg", "Invalid value"))
        messages.append(f"{'.'.join(location)}: {message}" if location else message)
    return messages


class ValidationErrorInterceptor:
    """FastAPI exception handler for ``RequestValidationError``."""

    status_code = 400

    async def __call__(self, request: Request, exc: RequestValidationError) -> JSONResponse:
        body = ValidationErrorResponse(errors=format_validation_errors(exc.errors()))
        logger.info(
            "request validation failed",
            extra={
                fields.METHOD: request.method,
                fields.PATH: request.url.path,
                "error_count": len(body.errors),
            },
        )
        return JSONResponse(
            status_code=self.status_code,
            content=body.model_dump(by_alias=True),
        )
