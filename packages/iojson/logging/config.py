"""Root logger setup for the echo service and the CLI.

One stdout handler, either JSON lines or plain text. Bound context fields
(HTTP method and path, envelope status and counts) are attached to every
record, and typed envelope exceptions contribute their stable error code.
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

from pydantic_core import to_json

from packages.iojson.config import LoggingSettings

from . import fields
from .context import bind_context, get_context


class ContextFilter(logging.Filter):
    """Copy the bound context fields onto each record as ``record.context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        context: dict[str, Any] = get_context()
        code = _error_code(record)
        if code is not None:
            context[fields.ERROR_CODE] = code
        record.context = context
        return True


class JsonFormatter(logging.Formatter):
    """One compact JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            fields.TIMESTAMP: datetime.fromtimestamp(record.created, UTC).isoformat(),
            fields.LEVEL: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
        }
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            payload.update(context)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return to_json(payload, fallback=str).decode("utf-8")


class PlainFormatter(logging.Formatter):
    """Single-line text for terminals, context appended as ``[key=value ...]``."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "context", None)
        if not context:
            return message
        pairs = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{message} [{pairs}]"


def configure_logging(
    settings: LoggingSettings | None = None,
    *,
    stream: TextIO | None = None,
) -> None:
    """Install the single root handler described by ``settings``.

    Calling it again replaces the previous handler. ``service`` and
    ``environment`` are bound into the logging context of the caller.
    """
    settings = settings or LoggingSettings()
    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if settings.json_output else PlainFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.level)

    bind_context(
        **{fields.SERVICE: settings.service, fields.ENVIRONMENT: settings.environment}
    )


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a stdlib logger; handlers come from ``configure_logging``."""
    return logging.getLogger(name)


def _error_code(record: logging.LogRecord) -> str | None:
    if not record.exc_info:
        return None
    code = getattr(record.exc_info[1], "code", None)
    return code if isinstance(code, str) else None
