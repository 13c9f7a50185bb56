"""Public error API for the envelope package."""

from . import codes
from .normalize import exception_to_message, validation_summary
from .types import (
    DecodeError,
    EncodingError,
    EnvelopeError,
    EnvelopeFinalizedError,
    IndexOutOfRange,
    KeyNotFoundError,
    NilFragmentError,
    SizeLimitExceeded,
)

__all__ = [
    "DecodeError",
    "EncodingError",
    "EnvelopeError",
    "EnvelopeFinalizedError",
    "IndexOutOfRange",
    "KeyNotFoundError",
    "NilFragmentError",
    "SizeLimitExceeded",
    "codes",
    "exception_to_message",
    "validation_summary",
]
