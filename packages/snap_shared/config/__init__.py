"""Public API for Snap configuration utilities."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    DEVELOPMENT_PROFILE,
    AuthSettings,
    BootSettings,
    DatabaseSettings,
    EnvironmentSettings,
    HttpSettings,
    LoggingSettings,
    MailSettings,
    SeedAccountSettings,
    SeedSettings,
    SnapSettings,
    is_development_profile,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEVELOPMENT_PROFILE",
    "AuthSettings",
    "BootSettings",
    "DatabaseSettings",
    "EnvironmentSettings",
    "HttpSettings",
    "LoggingSettings",
    "MailSettings",
    "SeedAccountSettings",
    "SeedSettings",
    "SnapSettings",
    "is_development_profile",
    "load_settings",
]
