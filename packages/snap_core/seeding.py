"""Idempotent seeding of baseline identity records."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from packages.snap_shared.config import SeedAccountSettings, SeedSettings
from packages.snap_shared.errors import ErrorDetail, codes, exception_to_error
from packages.snap_shared.logging import fields
from resources.substrates.sql import normalize_store_error
from services.identity.domain import Account, AccountAlreadyExistsError

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """Subset of the credential manager used by seeding."""

    def find_by_login(self, user_name: str) -> Account | None: ...

    def create(
        self,
        *,
        user_name: str,
        email: str,
        display_name: str,
        password: str,
        roles: Iterable[str] = (),
    ) -> Account: ...


@dataclass(frozen=True, slots=True)
class SeedSpec:
    """Declarative baseline account keyed by ``user_name``."""

    user_name: str
    email: str
    display_name: str
    password: str = field(repr=False)
    roles: tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, account: SeedAccountSettings) -> SeedSpec:
        return cls(
            user_name=account.user_name,
            email=account.email,
            display_name=account.display_name,
            password=account.password.get_secret_value(),
            roles=tuple(account.roles),
        )


def seed_specs_from_settings(settings: SeedSettings) -> tuple[SeedSpec, ...]:
    """Return the configured baseline accounts as seed specs."""
    return tuple(SeedSpec.from_settings(account) for account in settings.accounts)


class SeedStatus(str, Enum):
    """Outcome of one seed spec."""

    CREATED = "created"
    EXISTING = "existing"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class SeedResult:
    """Result for one spec; ``error`` and ``exception`` are set on failure."""

    user_name: str
    status: SeedStatus
    error: ErrorDetail | None = None
    exception: BaseException | None = None


@dataclass(frozen=True)
class SeedRunReport:
    """Aggregate outcome of one seeding pass."""

    results: tuple[SeedResult, ...] = ()

    @property
    def created(self) -> tuple[str, ...]:
        return self._names(SeedStatus.CREATED)

    @property
    def existing(self) -> tuple[str, ...]:
        return self._names(SeedStatus.EXISTING)

    @property
    def failures(self) -> tuple[SeedResult, ...]:
        return tuple(r for r in self.results if r.status is SeedStatus.FAILED)

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when no spec failed."""
        return not self.failures

    @property
    def error(self) -> ErrorDetail | None:
        """Return the first failure's error detail."""
        failures = self.failures
        return failures[0].error if failures else None

    @property
    def exception(self) -> BaseException | None:
        """Return the first failure's exception."""
        failures = self.failures
        return failures[0].exception if failures else None

    def _names(self, status: SeedStatus) -> tuple[str, ...]:
        return tuple(r.user_name for r in self.results if r.status is status)


class SeedRunner:
    """Create missing baseline accounts; never overwrite existing ones."""

    def seed(
        self, credential_manager: CredentialStore, specs: Iterable[SeedSpec]
    ) -> SeedRunReport:
        """Seed every spec in isolation. Never raises."""
        logger.info("seeding started")
        results = tuple(self._seed_one(credential_manager, spec) for spec in specs)
        report = SeedRunReport(results=results)
        logger.info(
            "seeding completed",
            extra={
                "created_count": len(report.created),
                "existing_count": len(report.existing),
                "failed_count": len(report.failures),
            },
        )
        return report

    def _seed_one(self, credential_manager: CredentialStore, spec: SeedSpec) -> SeedResult:
        try:
            if credential_manager.find_by_login(spec.user_name) is not None:
                return SeedResult(spec.user_name, SeedStatus.EXISTING)
            credential_manager.create(
                user_name=spec.user_name,
                email=spec.email,
                display_name=spec.display_name,
                password=spec.password,
                roles=spec.roles,
            )
        except AccountAlreadyExistsError:
            # Created concurrently between lookup and insert.
            return SeedResult(spec.user_name, SeedStatus.EXISTING)
        except Exception as exc:
            if isinstance(exc, SQLAlchemyError):
                detail = normalize_store_error(exc)
            else:
                detail = exception_to_error(exc, code=codes.SEED_FAILED)
            logger.warning(
                "seed account failed",
                extra={
                    fields.USER_NAME: spec.user_name,
                    fields.ERROR_CODE: detail.code,
                    fields.ERROR_CATEGORY: detail.category.value,
                },
            )
            return SeedResult(spec.user_name, SeedStatus.FAILED, detail, exc)
        return SeedResult(spec.user_name, SeedStatus.CREATED)
