"""Tests for pydantic-settings-backed configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from packages.iojson.config import load_settings
from packages.iojson.sizes import MIB


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove IOJSON_ variables that would leak into precedence checks."""
    for name in (
        "IOJSON_ENVELOPE__MAX_DECODE_BYTES",
        "IOJSON_ENVELOPE__DEBUG",
        "IOJSON_LOGGING__LEVEL",
        "IOJSON_HTTP__PORT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_load_settings_uses_model_defaults_when_sources_missing(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Settings should fall back to model defaults when env and YAML are absent."""
    _clear_env(monkeypatch)

    settings = load_settings(config_path=tmp_path / "iojson.yaml")

    assert settings.envelope.max_decode_bytes == 2 * MIB
    assert settings.envelope.debug is False
    assert settings.logging.level == "INFO"
    assert settings.logging.service == "iojson"
    assert settings.http.port == 8000


def test_load_settings_uses_precedence_cascade(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Init params should override env, env should override YAML, then defaults."""
    _clear_env(monkeypatch)
    config_file = tmp_path / "iojson.yaml"
    config_file.write_text(
        "\n".join(
            [
                "envelope:",
                "  max_decode_bytes: 1024",
                "  debug: true",
                "logging:",
                "  level: WARNING",
                "http:",
                "  port: 9001",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("IOJSON_ENVELOPE__MAX_DECODE_BYTES", "2048")
    monkeypatch.setenv("IOJSON_LOGGING__LEVEL", "ERROR")

    settings = load_settings(
        cli_params={"logging": {"level": "DEBUG"}},
        config_path=config_file,
    )

    assert settings.logging.level == "DEBUG"
    assert settings.envelope.max_decode_bytes == 2048
    assert settings.envelope.debug is True
    assert settings.http.port == 9001


def test_load_settings_rejects_non_positive_limit(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A zero size limit should fail validation."""
    _clear_env(monkeypatch)

    with pytest.raises(ValidationError):
        load_settings(
            cli_params={"envelope": {"max_decode_bytes": 0}},
            config_path=tmp_path / "iojson.yaml",
        )
