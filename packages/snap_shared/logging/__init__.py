"""Public logging API for the Snap service.

This package wraps Python's ``logging`` module with opinionated defaults for
stdout emission and structured context propagation.
"""

from . import fields
from .config import JsonFormatter, PlainFormatter, configure_logging, get_logger
from .context import bind_context, get_context, log_context

__all__ = [
    "JsonFormatter",
    "PlainFormatter",
    "bind_context",
    "configure_logging",
    "fields",
    "get_context",
    "get_logger",
    "log_context",
]
