"""Settings loading with deterministic precedence.

The cascade is always:
1) Init params (``cli_params``)
2) Environment variables
3) YAML config file (``~/.config/snap/snap.yaml`` unless overridden)
4) Built-in defaults

Environment variable format:
- Prefix: ``SNAP_``
- Nested keys: ``__`` separator
- Example: ``SNAP_DATABASE__URL=sqlite:///snap.db`` -> ``database.url``
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Mapping

from .models import SnapSettings


def load_settings(
    cli_params: Mapping[str, Any] | None = None,
    *,
    config_path: str | Path | None = None,
) -> SnapSettings:
    """Resolve ``SnapSettings`` from all sources.

    Raises:
        pydantic.ValidationError: When a required setting is absent or any
            value fails validation.
    """
    settings_cls = SnapSettings if config_path is None else _bind_config_path(Path(config_path))
    return settings_cls(**dict(cli_params or {}))


def _bind_config_path(path: Path) -> type[SnapSettings]:
    """Return a settings class reading YAML from ``path``."""

    class FileBoundSnapSettings(SnapSettings):
        _config_path: ClassVar[Path] = path

    return FileBoundSnapSettings
