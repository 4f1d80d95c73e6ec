"""Tests for the startup stage reporting sink."""

from __future__ import annotations

import logging

import pytest

from packages.snap_core.reporting import StageOutcome, StageStatus, StartupReporter
from packages.snap_shared.errors import internal_error
from packages.snap_shared.logging import fields


def test_report_records_and_logs_success(caplog: pytest.LogCaptureFixture) -> None:
    """Successful stages should log at info with stage fields."""
    reporter = StartupReporter()

    with caplog.at_level(logging.INFO, logger="packages.snap_core.reporting"):
        reporter.report("seed", StageOutcome.succeeded("1 created"))

    assert reporter.outcome("seed") == StageOutcome.succeeded("1 created")
    (record,) = caplog.records
    assert record.levelno == logging.INFO
    assert getattr(record, fields.STAGE) == "seed"
    assert getattr(record, fields.OUTCOME) == StageStatus.SUCCEEDED.value


def test_report_logs_failure_with_exception_info(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Failures should produce a structured error entry with the traceback."""
    reporter = StartupReporter()
    try:
        raise RuntimeError("schema drift")
    except RuntimeError as exc:
        failure = exc

    with caplog.at_level(logging.INFO, logger="packages.snap_core.reporting"):
        reporter.report(
            "migrations",
            StageOutcome.failed(internal_error("schema drift"), exception=failure),
        )

    (record,) = caplog.records
    assert record.levelno == logging.ERROR
    assert record.exc_info is not None and record.exc_info[1] is failure
    assert "schema drift" in record.getMessage()
    assert reporter.failures()[0].stage == "migrations"


class _BrokenLogger(logging.Logger):
    def info(self, *args, **kwargs) -> None:  # type: ignore[override]
        raise OSError("disk full")


def test_report_never_raises_when_logging_fails() -> None:
    """A logging failure must not affect the boot outcome."""
    reporter = StartupReporter(_BrokenLogger("broken"))

    reporter.report("seed", StageOutcome.skipped())

    assert reporter.dropped == 1
    assert reporter.outcome("seed") == StageOutcome.skipped()
