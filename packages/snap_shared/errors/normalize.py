"""Exception normalization utilities for shared error contracts."""

from __future__ import annotations

from . import codes
from .factories import (
    dependency_error,
    internal_error,
    not_found_error,
    policy_error,
    validation_error,
)
from .types import ErrorDetail


def exception_to_error(exc: BaseException, *, code: str | None = None) -> ErrorDetail:
    """Normalize a Python exception into a shared ``ErrorDetail``.

    The mapping is generic. Callers with more context (for example the data
    store) normalize first and only fall back to this function. ``code``
    overrides the code chosen for the internal fallback category.
    """
    metadata = {"exception_type": type(exc).__name__}
    message = str(exc)

    if isinstance(exc, ValueError):
        return validation_error(message, code=codes.INVALID_ARGUMENT, metadata=metadata)

    if isinstance(exc, KeyError):
        return not_found_error(message, code=codes.RESOURCE_NOT_FOUND, metadata=metadata)

    if isinstance(exc, PermissionError):
        return policy_error(message, code=codes.PERMISSION_DENIED, metadata=metadata)

    if isinstance(exc, TimeoutError):
        return dependency_error(
            message or "dependency timeout",
            code=codes.DEPENDENCY_TIMEOUT,
            metadata=metadata,
        )

    if isinstance(exc, ConnectionError):
        return dependency_error(
            message or "dependency unavailable",
            code=codes.DEPENDENCY_UNAVAILABLE,
            metadata=metadata,
        )

    return internal_error(
        message or "unexpected exception",
        code=code or codes.UNEXPECTED_EXCEPTION,
        metadata=metadata,
    )
