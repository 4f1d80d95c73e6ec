"""Typed configuration models for Snap runtime settings."""

from __future__ import annotations

from pathlib import Path
from typing import ClassVar, Literal

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "snap" / "snap.yaml"

DEVELOPMENT_PROFILE = "development"


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "snap"


class DatabaseSettings(BaseModel):
    """Primary data store connection settings.

    ``url`` has no default: there is no safe store to fall back to, so a
    missing value must stop the process before it serves anything.
    """

    url: str
    pool_size: int = Field(default=5, gt=0)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout_seconds: float = Field(default=30.0, gt=0)
    pool_pre_ping: bool = True
    connect_timeout_seconds: float = Field(default=10.0, gt=0)
    health_timeout_seconds: float = Field(default=1.0, gt=0)
    sslmode: Literal[
        "disable", "allow", "prefer", "require", "verify-ca", "verify-full"
    ] = "prefer"

    @field_validator("url")
    @classmethod
    def _require_parseable_url(cls, value: str) -> str:
        """Reject blank or unparseable SQLAlchemy URLs."""
        candidate = value.strip()
        if not candidate:
            raise ValueError("database.url must not be blank")
        try:
            make_url(candidate)
        except ArgumentError as exc:
            raise ValueError(f"database.url is not a valid database URL: {exc}") from exc
        return candidate


class EnvironmentSettings(BaseModel):
    """Deployment profile selection."""

    profile: str = "production"

    @property
    def is_development(self) -> bool:
        """Return ``True`` when running the development profile."""
        return is_development_profile(self.profile)


class HttpSettings(BaseModel):
    """HTTP surface settings."""

    host: str = "0.0.0.0"
    port: int = Field(default=8000, gt=0, lt=65536)
    title: str = "Snap API"
    version: str = "v1"
    docs_path: str = "/swagger"
    openapi_path: str = "/swagger/v1/swagger.json"
    # Path prefix -> roles; an empty list only requires an authenticated user.
    authorization_rules: dict[str, list[str]] = Field(
        default_factory=lambda: {"/api/accounts/me": []}
    )


class AuthSettings(BaseModel):
    """Bearer token issuance settings."""

    token_secret: SecretStr = SecretStr("replace-me")
    token_ttl_seconds: int = Field(default=3600, gt=0)
    password_time_cost: int = Field(default=3, gt=0)
    password_memory_cost_kib: int = Field(default=65536, ge=8)
    password_parallelism: int = Field(default=4, gt=0)


class MailSettings(BaseModel):
    """Outbound mail settings; SMTP is used only when ``smtp_host`` is set."""

    sender: str = "no-reply@snap.local"
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: SecretStr | None = None
    smtp_starttls: bool = True
    timeout_seconds: float = Field(default=10.0, gt=0)


class BootSettings(BaseModel):
    """Boot sequence switches."""

    run_migrations_on_startup: bool = True
    run_seed_on_startup: bool = True


class SeedAccountSettings(BaseModel):
    """One baseline account created on first boot."""

    user_name: str
    email: str
    display_name: str
    password: SecretStr
    roles: list[str] = Field(default_factory=list)


def _default_seed_accounts() -> list[SeedAccountSettings]:
    return [
        SeedAccountSettings(
            user_name="admin",
            email="admin@snap.local",
            display_name="Snap Administrator",
            password=SecretStr("Pa$$w0rd-change-me"),
            roles=["Admin"],
        )
    ]


class SeedSettings(BaseModel):
    """Baseline records seeded at every startup."""

    accounts: list[SeedAccountSettings] = Field(default_factory=_default_seed_accounts)


class SnapSettings(BaseSettings):
    """Root runtime settings resolved from init/env/yaml/defaults sources."""

    model_config = SettingsConfigDict(
        env_prefix="SNAP_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
    )

    database: DatabaseSettings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    environment: EnvironmentSettings = Field(default_factory=EnvironmentSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    mail: MailSettings = Field(default_factory=MailSettings)
    boot: BootSettings = Field(default_factory=BootSettings)
    seed: SeedSettings = Field(default_factory=SeedSettings)

    _config_path: ClassVar[Path] = DEFAULT_CONFIG_PATH

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Apply Snap precedence: init > env > yaml > defaults."""
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(
                settings_cls,
                yaml_file=cls._config_path,
                yaml_file_encoding="utf-8",
            ),
        )


def is_development_profile(profile: str) -> bool:
    """Compare a profile name against ``development`` ignoring case."""
    return profile.strip().lower() == DEVELOPMENT_PROFILE
