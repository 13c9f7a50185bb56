"""Exception normalization into envelope error lines."""

from __future__ import annotations

from pydantic import ValidationError

from .types import EnvelopeError


def exception_to_message(exc: BaseException) -> str:
    """Normalize one exception into a single human-readable ``ErrArr`` line.

    Envelope exceptions already carry a caller-facing message. Anything else
    is reported by type name so unexpected internals stay out of the wire
    document beyond their message text.
    """
    if isinstance(exc, EnvelopeError):
        return str(exc)

    text = str(exc).strip()
    if not text:
        return f"{type(exc).__name__}: unexpected exception"
    return f"{type(exc).__name__}: {text}"


def validation_summary(error: ValidationError) -> str:
    """Return the first validation problem as a stable one-liner."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}" if location else message
