"""FastAPI and uvicorn helpers for the Snap HTTP runtime."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

import uvicorn
from fastapi import FastAPI
from starlette.middleware import Middleware


def create_app(
    *,
    title: str = "snap",
    version: str = "0.0.0",
    middleware: Sequence[Middleware] = (),
    exception_handlers: Mapping[Any, Callable[..., Any]] | None = None,
) -> FastAPI:
    """Create a FastAPI app with project defaults.

    Built-in documentation routes are always disabled; the development
    pipeline mounts its own. ``middleware`` is ordered outermost first.
    """
    return FastAPI(
        title=title,
        version=version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        middleware=list(middleware),
        exception_handlers=dict(exception_handlers or {}),
    )


def run_app(
    app: FastAPI,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Run one FastAPI app through uvicorn."""
    uvicorn.run(app, host=host, port=port, log_level=log_level, log_config=None)
