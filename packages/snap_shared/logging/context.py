"""Boot-stage fields carried onto every log record of the current task."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType
from typing import Iterator, Mapping

_EMPTY: Mapping[str, str] = MappingProxyType({})
_STAGE_FIELDS: ContextVar[Mapping[str, str]] = ContextVar(
    "snap_stage_fields", default=_EMPTY
)


def _merged(values: Mapping[str, object]) -> Mapping[str, str]:
    fields = dict(_STAGE_FIELDS.get())
    fields.update((str(k), str(v)) for k, v in values.items() if v is not None)
    return MappingProxyType(fields)


def get_context() -> dict[str, str]:
    """Return the fields bound for the current task."""
    return dict(_STAGE_FIELDS.get())


def bind_context(**values: object) -> None:
    """Attach ``values`` (stringified, ``None`` dropped) until the task ends."""
    if values:
        _STAGE_FIELDS.set(_merged(values))


@contextmanager
def log_context(values: Mapping[str, object]) -> Iterator[Mapping[str, str]]:
    """Attach ``values`` inside the block only and yield the bound fields."""
    token = _STAGE_FIELDS.set(_merged(values))
    try:
        yield _STAGE_FIELDS.get()
    finally:
        _STAGE_FIELDS.reset(token)
