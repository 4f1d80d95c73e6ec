"""API documentation endpoints (OpenAPI JSON and Swagger UI)."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import FastAPI
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import HTMLResponse, JSONResponse


@dataclass(frozen=True)
class ApiDocumentation:
    """Documentation surface mounted only by the development pipeline."""

    title: str
    version: str
    docs_path: str = "/swagger"
    openapi_path: str = "/swagger/v1/swagger.json"

    def register(self, app: FastAPI) -> None:
        """Add the OpenAPI document and Swagger UI routes to ``app``."""

        async def openapi_document() -> JSONResponse:
            return JSONResponse(app.openapi())

        async def swagger_ui() -> HTMLResponse:
            return get_swagger_ui_html(
                openapi_url=self.openapi_path,
                title=f"{self.title} {self.version}",
            )

        app.add_api_route(
            self.openapi_path, openapi_document, methods=["GET"], include_in_schema=False
        )
        app.add_api_route(
            self.docs_path, swagger_ui, methods=["GET"], include_in_schema=False
        )
