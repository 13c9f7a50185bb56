"""Settings loading with deterministic precedence.

The cascade is always:
1) CLI params
2) Environment variables (``IOJSON_`` prefix, ``__`` for nesting)
3) YAML config file (``~/.config/iojson/iojson.yaml`` unless overridden)
4) Built-in model defaults

Example: ``IOJSON_ENVELOPE__MAX_DECODE_BYTES=4096`` sets
``envelope.max_decode_bytes``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from pydantic_settings import SettingsConfigDict

from .models import DEFAULT_CONFIG_PATH, IojsonSettings


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    config_path: str | Path | None = None,
) -> IojsonSettings:
    """Load settings from CLI params, env, one YAML file, and defaults."""
    resolved = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    class _ResolvedSettings(IojsonSettings):
        model_config = SettingsConfigDict(yaml_file=resolved)

    return _ResolvedSettings(**dict(cli_params or {}))
