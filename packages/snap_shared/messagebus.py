"""In-process command dispatcher for request/response and fire-and-forget messages.

Handlers are registered from explicit tables rather than discovered at
runtime, so the full handler set is visible in code and checked once when the
bus is built.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

TResponse = TypeVar("TResponse")


@dataclass(frozen=True)
class Request:
    """Base class for messages answered by exactly one handler."""


@dataclass(frozen=True)
class Notification:
    """Base class for messages fanned out to zero or more handlers."""


class NoHandlerForRequest(LookupError):
    """Raised when no handler is registered for a request type."""

    def __init__(self, request: Request) -> None:
        super().__init__(f"No handler found for request {type(request).__name__}")


class MessageBus:
    """Route requests and notifications to their registered handlers.

    Args:
        request_handlers: Request type -> handler returning the response.
        notification_handlers: Notification type -> handlers run in order.

    Handlers accept a single message argument; collaborators are bound
    beforehand with ``inject_dependencies``.
    """

    def __init__(
        self,
        *,
        request_handlers: Mapping[type[Request], Callable[[Any], Any]],
        notification_handlers: Mapping[
            type[Notification], Sequence[Callable[[Any], None]]
        ]
        | None = None,
    ) -> None:
        self._request_handlers = dict(request_handlers)
        self._notification_handlers = {
            message_type: tuple(handlers)
            for message_type, handlers in (notification_handlers or {}).items()
        }

    def send(self, request: Request) -> Any:
        """Dispatch one request and return its handler's response.

        Raises:
            NoHandlerForRequest: If no handler is registered for the type.
            Exception: Whatever the handler raises, after logging it.
        """
        handler = self._request_handlers.get(type(request))
        if handler is None:
            logger.error("No handler found for request %s", type(request).__name__)
            raise NoHandlerForRequest(request)

        handler_name = _handler_name(handler)
        logger.debug("Handling request %s with handler %s", request, handler_name)
        try:
            return handler(request)
        except Exception:
            logger.exception(
                "Exception handling request %s with handler %s",
                type(request).__name__,
                handler_name,
            )
            raise

    def publish(self, notification: Notification) -> int:
        """Deliver one notification to every subscribed handler.

        Each handler runs in isolation: a failing handler is logged and the
        remaining handlers still run. Returns the number of handlers that
        completed successfully.
        """
        delivered = 0
        for handler in self._notification_handlers.get(type(notification), ()):
            try:
                handler(notification)
            except Exception:
                logger.exception(
                    "Notification handler %s failed for %s",
                    _handler_name(handler),
                    type(notification).__name__,
                )
                continue
            delivered += 1
        return delivered

    def handles(self, message_type: type) -> bool:
        """Return ``True`` when a request or notification type is registered."""
        return (
            message_type in self._request_handlers
            or message_type in self._notification_handlers
        )


def inject_dependencies(
    handler: Callable[..., TResponse], dependencies: Mapping[str, object]
) -> Callable[[Any], TResponse]:
    """Bind the dependencies a handler names in its signature."""
    params = inspect.signature(handler).parameters
    deps = {name: value for name, value in dependencies.items() if name in params}

    def bound(message: Any) -> TResponse:
        return handler(message, **deps)

    bound.__name__ = getattr(handler, "__name__", repr(handler))
    return bound


def _handler_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__name__", repr(fn))
