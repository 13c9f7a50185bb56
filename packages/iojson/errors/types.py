"""Typed exceptions raised by the envelope core.

Every fallible envelope operation raises one of these types to its immediate
caller. None of them is retried or swallowed inside the package; the only
local recovery is the fixed fallback document produced by ``Envelope.encode``.

The classes must stay mutable: ``contextlib`` assigns ``__traceback__`` to
errors leaving a managed block. ``eq=False`` keeps identity hashing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from . import codes


@dataclass(eq=False)
class EnvelopeError(Exception):
    """Base error type for envelope failures."""

    code: ClassVar[str] = codes.UNEXPECTED_EXCEPTION

    message: str

    def __str__(self) -> str:
        """Return the human-readable error message."""
        return self.message


@dataclass(eq=False)
class EncodingError(EnvelopeError):
    """A value could not be serialized into a raw JSON fragment."""

    code: ClassVar[str] = codes.ENCODING_ERROR

    cause: Exception | None = None


@dataclass(eq=False)
class DecodeError(EnvelopeError):
    """Bytes are not valid JSON or do not match the requested target shape."""

    code: ClassVar[str] = codes.DECODE_ERROR

    cause: Exception | None = None


@dataclass(eq=False)
class SizeLimitExceeded(DecodeError):
    """Inbound payload is larger than the configured byte limit."""

    code: ClassVar[str] = codes.SIZE_LIMIT_EXCEEDED

    limit: int = 0


@dataclass(eq=False)
class KeyNotFoundError(EnvelopeError):
    """Lookup key is absent from the keyed fragment map."""

    code: ClassVar[str] = codes.KEY_NOT_FOUND

    key: str | int = ""


@dataclass(eq=False)
class IndexOutOfRange(KeyNotFoundError):
    """Lookup index falls outside the fragment array."""

    code: ClassVar[str] = codes.INDEX_OUT_OF_RANGE

    length: int = 0


@dataclass(eq=False)
class NilFragmentError(EnvelopeError):
    """Fragment is absent or JSON null where the target cannot hold null."""

    code: ClassVar[str] = codes.NIL_FRAGMENT


@dataclass(eq=False)
class EnvelopeFinalizedError(EnvelopeError):
    """Mutation attempted after the envelope was encoded or decoded."""

    code: ClassVar[str] = codes.ENVELOPE_FINALIZED
