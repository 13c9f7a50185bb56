"""Public API for envelope configuration utilities."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    EnvelopeSettings,
    HttpSettings,
    IojsonSettings,
    LoggingSettings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "EnvelopeSettings",
    "HttpSettings",
    "IojsonSettings",
    "LoggingSettings",
    "load_settings",
]
