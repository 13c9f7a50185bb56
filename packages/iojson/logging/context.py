"""Request-scoped logging fields carried in a ``contextvars`` variable.

Values keep their JSON scalar type, so counts and status flags stay numbers
and booleans in JSON log lines. Each asyncio task and thread sees its own
copy.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Mapping, Union

ContextValue = Union[str, int, float, bool]

_LOG_CONTEXT: ContextVar[dict[str, ContextValue]] = ContextVar(
    "iojson_log_context", default={}
)


def get_context() -> dict[str, ContextValue]:
    """Return a copy of the fields bound in the current context."""
    return dict(_LOG_CONTEXT.get())


def _coerce(value: object) -> ContextValue:
    if isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def bind_context(**values: object) -> None:
    """Bind fields into the current context; ``None`` values are skipped."""
    current = dict(_LOG_CONTEXT.get())
    current.update({key: _coerce(value) for key, value in values.items() if value is not None})
    _LOG_CONTEXT.set(current)


def clear_context(*keys: str) -> None:
    """Drop the named fields, or every field when none are named."""
    if not keys:
        _LOG_CONTEXT.set({})
        return
    _LOG_CONTEXT.set({key: value for key, value in _LOG_CONTEXT.get().items() if key not in keys})


@contextmanager
def log_context(values: Mapping[str, object]) -> Iterator[None]:
    """Bind ``values`` for the duration of a block, then restore the previous fields."""
    token = _LOG_CONTEXT.set(dict(_LOG_CONTEXT.get()))
    try:
        bind_context(**dict(values))
        yield
    finally:
        _LOG_CONTEXT.reset(token)
