"""``GET /health``: boot outcome per stage plus data store reachability."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict

from packages.snap_shared import capabilities

from .reporting import StageStatus, StartupReporter


class HealthResponse(BaseModel):
    """Aggregate health payload."""

    model_config = ConfigDict(frozen=True)

    status: str
    data_store_ready: bool
    stages: dict[str, str]


def evaluate_health(
    reporter: StartupReporter | None, *, data_store_ready: bool
) -> HealthResponse:
    """Return ``ok`` only when the store answers and no boot stage failed."""
    stages: dict[str, str] = {}
    if reporter is not None:
        for event in reporter.events:
            stages[event.stage] = event.outcome.status.value
    failed = any(status == StageStatus.FAILED.value for status in stages.values())
    return HealthResponse(
        status="ok" if data_store_ready and not failed else "degraded",
        data_store_ready=data_store_ready,
        stages=stages,
    )


def build_router() -> APIRouter:
    router = APIRouter(tags=["health"])

    @router.get("/health", response_model=HealthResponse)
    def health(request: Request) -> HealthResponse:
        store = request.app.state.registry.resolve(capabilities.DATA_STORE)
        return evaluate_health(
            getattr(request.app.state, "startup_reporter", None),
            data_store_ready=store.is_healthy(),
        )

    return router
