"""Object mapping between persistence and transport representations."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class MappingNotConfiguredError(LookupError):
    """Raised when no profile maps a source type to the requested target."""

    def __init__(self, source: type, target: type) -> None:
        super().__init__(
            f"No mapping configured from {source.__name__} to {target.__name__}"
        )


@dataclass(frozen=True)
class MappingProfile:
    """One source -> target conversion.

    Without ``convert``, pydantic targets are built from the source's
    attributes (``model_validate(source, from_attributes=True)``).
    """

    source: type
    target: type
    convert: Callable[[Any], Any] | None = None


class ObjectMapper:
    """Convert objects using an explicit, closed set of mapping profiles."""

    def __init__(self, profiles: Iterable[MappingProfile]) -> None:
        self._profiles: dict[tuple[type, type], Callable[[Any], Any]] = {}
        for profile in profiles:
            key = (profile.source, profile.target)
            if key in self._profiles:
                raise ValueError(
                    f"duplicate mapping profile {profile.source.__name__} -> "
                    f"{profile.target.__name__}"
                )
            self._profiles[key] = profile.convert or _attribute_converter(profile.target)

    def map(self, source: object, target: type[T]) -> T:
        """Map one object into ``target``."""
        converter = self._resolve(type(source), target)
        return converter(source)

    def map_many(self, sources: Iterable[object], target: type[T]) -> list[T]:
        """Map every object of an iterable into ``target``."""
        return [self.map(item, target) for item in sources]

    def _resolve(self, source: type, target: type) -> Callable[[Any], Any]:
        for candidate in source.__mro__:
            converter = self._profiles.get((candidate, target))
            if converter is not None:
                return converter
        raise MappingNotConfiguredError(source, target)


def _attribute_converter(target: type) -> Callable[[Any], Any]:
    if not (isinstance(target, type) and issubclass(target, BaseModel)):
        raise TypeError(
            f"mapping to {target.__name__} needs an explicit convert callable"
        )
    return lambda source: target.model_validate(source, from_attributes=True)
