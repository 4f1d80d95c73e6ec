"""Startup stage reporting sink."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from packages.snap_shared.errors import ErrorDetail
from packages.snap_shared.logging import fields

logger = logging.getLogger(__name__)


class StageStatus(str, Enum):
    """Terminal status of one boot stage."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class StageOutcome:
    """Outcome of one boot stage; failures carry error detail."""

    status: StageStatus
    summary: str = ""
    error: ErrorDetail | None = None
    exception: BaseException | None = None

    @classmethod
    def succeeded(cls, summary: str = "") -> StageOutcome:
        return cls(StageStatus.SUCCEEDED, summary)

    @classmethod
    def skipped(cls, summary: str = "") -> StageOutcome:
        return cls(StageStatus.SKIPPED, summary)

    @classmethod
    def failed(
        cls,
        error: ErrorDetail,
        *,
        exception: BaseException | None = None,
        summary: str = "",
    ) -> StageOutcome:
        return cls(StageStatus.FAILED, summary, error, exception)


@dataclass(frozen=True, slots=True)
class StartupEvent:
    """One recorded stage outcome."""

    stage: str
    outcome: StageOutcome
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class StartupReporter:
    """Record and log stage outcomes.

    ``report`` never raises: an event that cannot be logged is still
    recorded and counted in ``dropped``.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log or logger
        self.events: list[StartupEvent] = []
        self.dropped = 0

    def report(self, stage: str, outcome: StageOutcome) -> None:
        """Record one stage outcome and emit its log entry."""
        try:
            self.events.append(StartupEvent(stage=stage, outcome=outcome))
            self._emit(stage, outcome)
        except Exception:
            self.dropped += 1

    def outcome(self, stage: str) -> StageOutcome | None:
        """Return the latest outcome recorded for ``stage``."""
        for event in reversed(self.events):
            if event.stage == stage:
                return event.outcome
        return None

    def failures(self) -> tuple[StartupEvent, ...]:
        return tuple(
            event for event in self.events if event.outcome.status is StageStatus.FAILED
        )

    def _emit(self, stage: str, outcome: StageOutcome) -> None:
        extra: dict[str, object] = {
            fields.STAGE: stage,
            fields.OUTCOME: outcome.status.value,
        }
        if outcome.status is not StageStatus.FAILED:
            self._logger.info(
                "startup stage %s: %s", stage, outcome.summary or outcome.status.value,
                extra=extra,
            )
            return

        if outcome.error is not None:
            extra[fields.ERROR_CODE] = outcome.error.code
            extra[fields.ERROR_CATEGORY] = outcome.error.category.value
        exc = outcome.exception
        self._logger.error(
            "startup stage %s failed: %s",
            stage,
            outcome.error.message if outcome.error is not None else outcome.summary,
            extra=extra,
            exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
        )
