"""SQLAlchemy exception normalization helpers."""

from __future__ import annotations

from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    ProgrammingError,
)

from packages.snap_shared.errors import (
    ErrorDetail,
    codes,
    conflict_error,
    dependency_error,
    exception_to_error,
)


def normalize_store_error(exc: BaseException) -> ErrorDetail:
    """Map low-level DB exceptions into shared structured error semantics."""
    metadata = {"exception_type": type(exc).__name__}

    if isinstance(exc, IntegrityError):
        return conflict_error(
            "resource already exists",
            code=codes.ALREADY_EXISTS,
            metadata=metadata,
        )

    if isinstance(exc, OperationalError) or "timeout" in str(exc).lower():
        return dependency_error(
            "data store unavailable",
            code=codes.DEPENDENCY_UNAVAILABLE,
            metadata={**metadata, "cause": str(getattr(exc, "orig", exc))},
        )

    if isinstance(exc, (InterfaceError, ProgrammingError)):
        return dependency_error(
            "data store request failed",
            code=codes.DEPENDENCY_FAILURE,
            retryable=False,
            metadata=metadata,
        )

    return exception_to_error(exc)
