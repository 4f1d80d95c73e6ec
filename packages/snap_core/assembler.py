"""Register cross-cutting request-handling capabilities."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from packages.snap_shared import capabilities
from packages.snap_shared.config import SnapSettings
from packages.snap_shared.http import ApiDocumentation, ValidationErrorInterceptor
from packages.snap_shared.mapping import ObjectMapper
from packages.snap_shared.messagebus import MessageBus, Request, inject_dependencies
from services.identity import api as identity_api
from services.identity import handlers as identity_handlers
from services.mail import commands as mail_commands

from . import health
from .registry import ServiceRegistry

# Explicit handler tables; nothing is discovered at runtime.
REQUEST_HANDLER_TABLES = (
    identity_handlers.REQUEST_HANDLERS,
    mail_commands.REQUEST_HANDLERS,
)
NOTIFICATION_HANDLER_TABLES = (identity_handlers.NOTIFICATION_HANDLERS,)
MAPPING_PROFILES = (*identity_handlers.MAPPING_PROFILES,)


def assemble(registry: ServiceRegistry) -> ServiceRegistry:
    """Register dispatcher, mapper, validation, documentation, and routers."""
    registry.register_factory(
        capabilities.OBJECT_MAPPER, lambda built: ObjectMapper(MAPPING_PROFILES)
    )
    registry.register_factory(capabilities.COMMAND_DISPATCHER, build_dispatcher)
    registry.register_instance(
        capabilities.VALIDATION_INTERCEPTOR, ValidationErrorInterceptor()
    )
    registry.register_factory(capabilities.API_DOCUMENTATION, _build_documentation)
    registry.register_factory(
        capabilities.ROUTERS,
        lambda built: (identity_api.build_router(), health.build_router()),
    )
    return registry


def build_dispatcher(built: Mapping[str, object]) -> MessageBus:
    """Build the message bus with collaborators bound by parameter name.

    Handlers naming ``dispatch`` receive the bus's own ``send``, so follow-up
    commands go through the same dispatcher.
    """

    def dispatch(request: Request) -> Any:
        return bus.send(request)

    dependencies = {
        "dispatch": dispatch,
        "credential_manager": built[capabilities.CREDENTIAL_MANAGER],
        "token_signer": built[capabilities.TOKEN_SIGNER],
        "mail_sender": built[capabilities.MAIL_SENDER],
        "mapper": built[capabilities.OBJECT_MAPPER],
    }
    request_handlers = {}
    for table in REQUEST_HANDLER_TABLES:
        for message_type, handler in table.items():
            if message_type in request_handlers:
                raise ValueError(
                    f"duplicate request handler for {message_type.__name__}"
                )
            request_handlers[message_type] = inject_dependencies(handler, dependencies)

    notification_handlers: dict[type, list] = {}
    for table in NOTIFICATION_HANDLER_TABLES:
        for message_type, handlers in table.items():
            notification_handlers.setdefault(message_type, []).extend(
                inject_dependencies(handler, dependencies) for handler in handlers
            )

    bus = MessageBus(
        request_handlers=request_handlers,
        notification_handlers=notification_handlers,
    )
    return bus


def _build_documentation(built: Mapping[str, object]) -> ApiDocumentation:
    settings: SnapSettings = built[capabilities.SETTINGS]  # type: ignore[assignment]
    http = settings.http
    return ApiDocumentation(
        title=http.title,
        version=http.version,
        docs_path=http.docs_path,
        openapi_path=http.openapi_path,
    )
