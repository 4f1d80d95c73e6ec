"""Request pipeline assembly with profile-conditional stages.

Stage order is fixed per profile and decided once, when the pipeline is
built. Middleware stages wrap each other in list order (first is outermost);
endpoint stages mount routes on the realized application.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.middleware import Middleware
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.errors import ServerErrorMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware

from packages.snap_shared import capabilities
from packages.snap_shared.config import SnapSettings, is_development_profile
from packages.snap_shared.http import (
    ApiDocumentation,
    AuthorizationMiddleware,
    BearerTokenBackend,
    ErrorTranslationMiddleware,
    ValidationErrorInterceptor,
    authentication_error_response,
    create_app,
)
from packages.snap_shared.logging import fields
from services.identity.tokens import TokenSigner

from .registry import ServiceRegistry

logger = logging.getLogger(__name__)

ERROR_TRANSLATION = "error-translation"
DEVELOPER_EXCEPTION_PAGE = "developer-exception-page"
API_DOCUMENTATION = "api-documentation"
HTTPS_REDIRECTION = "https-redirection"
AUTHENTICATION = "authentication"
AUTHORIZATION = "authorization"
DISPATCH = "dispatch"

DEVELOPMENT_ONLY_STAGES = frozenset({DEVELOPER_EXCEPTION_PAGE, API_DOCUMENTATION})


class StageKind(str, Enum):
    MIDDLEWARE = "middleware"
    ENDPOINTS = "endpoints"


@dataclass(frozen=True, slots=True)
class PipelineStage:
    """One named request-processing unit."""

    name: str
    kind: StageKind
    middleware: Middleware | None = None
    install: Callable[[FastAPI], None] | None = None


class RequestPipeline:
    """Ordered stages plus the registry they resolve from."""

    def __init__(
        self,
        stages: Sequence[PipelineStage],
        *,
        registry: ServiceRegistry,
        profile: str,
        title: str = "Snap API",
        version: str = "v1",
        validation_interceptor: ValidationErrorInterceptor | None = None,
    ) -> None:
        self.stages = tuple(stages)
        self.registry = registry
        self.profile = profile
        self._title = title
        self._version = version
        self._validation_interceptor = validation_interceptor
        self._app: FastAPI | None = None

    @property
    def stage_names(self) -> tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)

    def create_app(self) -> FastAPI:
        """Realize the FastAPI application; later calls return the same app."""
        if self._app is not None:
            return self._app

        exception_handlers = {}
        if self._validation_interceptor is not None:
            exception_handlers[RequestValidationError] = self._validation_interceptor
        app = create_app(
            title=self._title,
            version=self._version,
            middleware=[
                stage.middleware
                for stage in self.stages
                if stage.kind is StageKind.MIDDLEWARE and stage.middleware is not None
            ],
            exception_handlers=exception_handlers,
        )
        app.state.registry = self.registry
        for stage in self.stages:
            if stage.kind is StageKind.ENDPOINTS and stage.install is not None:
                stage.install(app)
        self._app = app
        return app


def build_pipeline(registry: ServiceRegistry, profile: str | None = None) -> RequestPipeline:
    """Build the stage list for ``profile`` from a realized registry.

    ``profile`` defaults to the configured environment profile.
    """
    settings: SnapSettings = registry.resolve(capabilities.SETTINGS)  # type: ignore[assignment]
    selected = settings.environment.profile if profile is None else profile
    development = is_development_profile(selected)

    token_signer: TokenSigner = registry.resolve(capabilities.TOKEN_SIGNER)  # type: ignore[assignment]
    documentation: ApiDocumentation = registry.resolve(capabilities.API_DOCUMENTATION)  # type: ignore[assignment]
    routers = registry.resolve(capabilities.ROUTERS)

    def dispatch(app: FastAPI) -> None:
        for router in routers:  # type: ignore[attr-defined]
            app.include_router(router)

    stages: list[PipelineStage] = [
        PipelineStage(
            ERROR_TRANSLATION,
            StageKind.MIDDLEWARE,
            middleware=Middleware(ErrorTranslationMiddleware, include_details=development),
        )
    ]
    if development:
        stages += [
            PipelineStage(
                DEVELOPER_EXCEPTION_PAGE,
                StageKind.MIDDLEWARE,
                middleware=Middleware(ServerErrorMiddleware, debug=True),
            ),
            PipelineStage(
                API_DOCUMENTATION, StageKind.ENDPOINTS, install=documentation.register
            ),
        ]
    stages += [
        PipelineStage(
            HTTPS_REDIRECTION,
            StageKind.MIDDLEWARE,
            middleware=Middleware(HTTPSRedirectMiddleware),
        ),
        PipelineStage(
            AUTHENTICATION,
            StageKind.MIDDLEWARE,
            middleware=Middleware(
                AuthenticationMiddleware,
                backend=BearerTokenBackend(token_signer.verify),
                on_error=authentication_error_response,
            ),
        ),
        PipelineStage(
            AUTHORIZATION,
            StageKind.MIDDLEWARE,
            middleware=Middleware(
                AuthorizationMiddleware, rules=settings.http.authorization_rules
            ),
        ),
        PipelineStage(DISPATCH, StageKind.ENDPOINTS, install=dispatch),
    ]

    pipeline = RequestPipeline(
        stages,
        registry=registry,
        profile=selected,
        title=settings.http.title,
        version=settings.http.version,
        validation_interceptor=registry.resolve(capabilities.VALIDATION_INTERCEPTOR),  # type: ignore[arg-type]
    )
    logger.info(
        "request pipeline built",
        extra={fields.PROFILE: selected, "stages": list(pipeline.stage_names)},
    )
    return pipeline
