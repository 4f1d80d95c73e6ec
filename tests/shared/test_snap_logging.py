"""Tests for structured logging formatters and context helpers."""

from __future__ import annotations

import contextvars
import json
import logging
import sys

from packages.snap_shared.logging import (
    JsonFormatter,
    PlainFormatter,
    bind_context,
    fields,
    get_context,
    log_context,
)
from packages.snap_shared.logging.config import ContextFilter


def _record(message: str = "hello", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("snap.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    ContextFilter().filter(record)
    return record


def test_json_formatter_emits_core_context_and_extra_fields() -> None:
    """JSON lines should include core fields, bound context, and extras."""
    with log_context({fields.SERVICE: "snap"}):
        record = _record(**{fields.STAGE: "seed"})

    payload = json.loads(JsonFormatter().format(record))

    assert payload[fields.MESSAGE] == "hello"
    assert payload[fields.LEVEL] == "INFO"
    assert payload[fields.LOGGER] == "snap.test"
    assert payload[fields.SERVICE] == "snap"
    assert payload[fields.STAGE] == "seed"
    assert fields.TIMESTAMP in payload


def test_json_formatter_includes_exception_text() -> None:
    """Records with exception info should serialize the traceback."""
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord(
            "snap.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
        )

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload[fields.EXCEPTION]


def test_plain_formatter_appends_structured_fields() -> None:
    """Plain output should stay greppable with sorted ``k=v`` suffixes."""
    record = contextvars.Context().run(
        _record, "stage done", **{fields.OUTCOME: "succeeded", fields.STAGE: "seed"}
    )

    line = PlainFormatter().format(record)

    assert "stage done" in line
    assert line.endswith("outcome=succeeded stage=seed")


def _scoped_binding() -> tuple[dict[str, str], dict[str, str], dict[str, str]]:
    bind_context(service="snap", ignored=None)
    with log_context({"stage": "migrations"}) as bound:
        inside = get_context()
    return dict(bound), inside, get_context()


def test_log_context_restores_previous_values() -> None:
    """Scoped context should not leak past its block."""
    bound, inside, after = contextvars.Context().run(_scoped_binding)

    assert bound == inside == {"service": "snap", "stage": "migrations"}
    assert after == {"service": "snap"}
