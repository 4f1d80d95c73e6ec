"""Capability registry built once at startup and frozen before serving."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping

from packages.snap_shared.logging import fields

logger = logging.getLogger(__name__)

Factory = Callable[[Mapping[str, object]], object]


class RegistryError(RuntimeError):
    """Raised for invalid registry use or an unresolvable factory graph."""


class RegistryFrozenError(RegistryError):
    """Raised when registering after the registry has been realized."""


class MissingCapabilityError(KeyError):
    """Raised when resolving a capability key that was never registered."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"capability '{self.key}' is not registered"


class _CapabilityNotBuilt(KeyError):
    """A factory asked for a capability that is not built yet."""

    def __str__(self) -> str:
        return f"capability '{self.args[0]}' is not built yet"


class _BuiltCapabilities(Mapping[str, object]):
    """Read-only view of built capabilities handed to factories."""

    def __init__(self, built: dict[str, object]) -> None:
        self._built = built

    def __getitem__(self, key: str) -> object:
        try:
            return self._built[key]
        except KeyError:
            raise _CapabilityNotBuilt(key) from None

    def __contains__(self, key: object) -> bool:
        return key in self._built

    def __iter__(self) -> Iterator[str]:
        return iter(self._built)

    def __len__(self) -> int:
        return len(self._built)


class ServiceRegistry:
    """Map capability keys to factories or singleton instances.

    Factories receive the mapping of capabilities built so far and look up
    their collaborators by key. A factory that looks up a capability not yet
    built is retried in the next round of ``realize()``. Any other exception
    raised by a factory propagates unchanged.
    """

    def __init__(self) -> None:
        self._factories: dict[str, Factory] = {}
        self._instances: dict[str, object] = {}
        self._realized = False

    @property
    def realized(self) -> bool:
        """Return ``True`` once ``realize()`` completed."""
        return self._realized

    def register_factory(
        self, key: str, factory: Factory, *, replace: bool = False
    ) -> None:
        """Register a factory producing the singleton for ``key``."""
        self._check_registration(key, replace=replace)
        self._instances.pop(key, None)
        self._factories[key] = factory

    def register_instance(
        self, key: str, instance: object, *, replace: bool = False
    ) -> None:
        """Register an already-built singleton for ``key``."""
        self._check_registration(key, replace=replace)
        self._factories.pop(key, None)
        self._instances[key] = instance

    def is_registered(self, key: str) -> bool:
        """Return ``True`` when ``key`` has a factory or an instance."""
        return key in self._factories or key in self._instances

    def keys(self) -> tuple[str, ...]:
        """Return registered keys in registration order."""
        return (*self._instances, *self._factories)

    def realize(self) -> ServiceRegistry:
        """Build every factory exactly once and freeze the registry.

        Raises:
            RegistryError: When a round of factory calls makes no progress.
                The last missing lookup is chained as its cause.
        """
        if self._realized:
            raise RegistryError("registry is already realized")

        built = dict(self._instances)
        view = _BuiltCapabilities(built)
        pending = list(self._factories.items())
        while pending:
            progressed = False
            last_missing: _CapabilityNotBuilt | None = None
            next_round: list[tuple[str, Factory]] = []
            for key, factory in pending:
                try:
                    built[key] = factory(view)
                except _CapabilityNotBuilt as exc:
                    last_missing = exc
                    next_round.append((key, factory))
                    continue
                progressed = True
                logger.debug("capability built", extra={fields.CAPABILITY: key})

            if not progressed:
                unresolved = ", ".join(key for key, _ in next_round)
                raise RegistryError(
                    "unable to resolve capability graph; unresolved capabilities: "
                    f"{unresolved}"
                ) from last_missing
            pending = next_round

        self._instances = built
        self._factories.clear()
        self._realized = True
        logger.info("service registry realized", extra={"capability_count": len(built)})
        return self

    def resolve(self, key: str) -> object:
        """Return the realized singleton for ``key``."""
        if not self._realized:
            raise RegistryError(f"cannot resolve '{key}' before the registry is realized")
        try:
            return self._instances[key]
        except KeyError:
            raise MissingCapabilityError(key) from None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.is_registered(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def _check_registration(self, key: str, *, replace: bool) -> None:
        if self._realized:
            raise RegistryFrozenError(f"cannot register '{key}' after realization")
        if not key:
            raise RegistryError("capability key must not be empty")
        if not replace and self.is_registered(key):
            raise RegistryError(f"capability '{key}' is already registered")
