"""Configuration composition: settings plus leaf service factories."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import SettingsError

from packages.snap_shared import capabilities
from packages.snap_shared.config import SnapSettings, load_settings
from packages.snap_shared.errors import ErrorDetail, configuration_error
from packages.snap_shared.logging import fields
from resources.substrates.sql import DataStore
from services.identity.data.repository import SqlAlchemyAccountRepository
from services.identity.passwords import PasswordHasher
from services.identity.service import CredentialManager
from services.identity.tokens import TokenSigner
from services.mail import build_mail_sender

from .registry import ServiceRegistry

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when settings are missing or malformed; fatal to the process."""

    def __init__(self, message: str, *, detail: ErrorDetail | None = None) -> None:
        super().__init__(message)
        self.detail = detail or configuration_error(message)


def compose(
    raw_config: Mapping[str, Any] | None = None,
    *,
    config_path: str | Path | None = None,
) -> ServiceRegistry:
    """Load settings and register the leaf service factories.

    No connection is opened here; the data store engine is created lazily
    when the registry is realized and connects on first use.

    Raises:
        ConfigurationError: When settings fail validation.
    """
    settings = _load(raw_config, config_path=config_path)

    registry = ServiceRegistry()
    registry.register_instance(capabilities.SETTINGS, settings)
    registry.register_factory(
        capabilities.DATA_STORE,
        lambda built: DataStore.from_settings(_settings(built).database),
    )
    registry.register_factory(capabilities.PASSWORD_HASHER, _build_password_hasher)
    registry.register_factory(
        capabilities.ACCOUNT_REPOSITORY,
        lambda built: SqlAlchemyAccountRepository(
            _data_store(built).session_factory
        ),
    )
    registry.register_factory(
        capabilities.CREDENTIAL_MANAGER,
        lambda built: CredentialManager(
            repository=built[capabilities.ACCOUNT_REPOSITORY],
            hasher=built[capabilities.PASSWORD_HASHER],
        ),
    )
    registry.register_factory(
        capabilities.TOKEN_SIGNER,
        lambda built: TokenSigner(
            _settings(built).auth.token_secret.get_secret_value(),
            ttl_seconds=_settings(built).auth.token_ttl_seconds,
        ),
    )
    registry.register_factory(
        capabilities.MAIL_SENDER,
        lambda built: build_mail_sender(_settings(built).mail),
    )
    logger.info(
        "configuration composed",
        extra={fields.PROFILE: settings.environment.profile},
    )
    return registry


def _load(
    raw_config: Mapping[str, Any] | None, *, config_path: str | Path | None
) -> SnapSettings:
    try:
        return load_settings(raw_config, config_path=config_path)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigurationError(f"invalid configuration: {problems}") from exc
    except (SettingsError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"unreadable configuration: {exc}") from exc


def _settings(built: Mapping[str, object]) -> SnapSettings:
    return built[capabilities.SETTINGS]  # type: ignore[return-value]


def _data_store(built: Mapping[str, object]) -> DataStore:
    return built[capabilities.DATA_STORE]  # type: ignore[return-value]


def _build_password_hasher(built: Mapping[str, object]) -> PasswordHasher:
    auth = _settings(built).auth
    return PasswordHasher(
        time_cost=auth.password_time_cost,
        memory_cost=auth.password_memory_cost_kib,
        parallelism=auth.password_parallelism,
    )
