"""Public HTTP API shared by the Snap request pipeline."""

from .docs import ApiDocumentation
from .middleware import (
    AUTHENTICATED_SCOPE,
    AuthorizationMiddleware,
    BearerTokenBackend,
    ErrorTranslationMiddleware,
    TokenVerifier,
    VerifiedIdentity,
    authentication_error_response,
)
from .responses import (
    ApiExceptionResponse,
    ApiResponse,
    api_error_response,
    default_message_for_status,
)
from .server import create_app, run_app
from .validation import (
    VALIDATION_ERRORS_FIELD,
    ValidationErrorInterceptor,
    ValidationErrorResponse,
    format_validation_errors,
)

__all__ = [
    "AUTHENTICATED_SCOPE",
    "ApiDocumentation",
    "ApiExceptionResponse",
    "ApiResponse",
    "AuthorizationMiddleware",
    "BearerTokenBackend",
    "ErrorTranslationMiddleware",
    "TokenVerifier",
    "VALIDATION_ERRORS_FIELD",
    "ValidationErrorInterceptor",
    "ValidationErrorResponse",
    "VerifiedIdentity",
    "api_error_response",
    "authentication_error_response",
    "create_app",
    "default_message_for_status",
    "format_validation_errors",
    "run_app",
]
