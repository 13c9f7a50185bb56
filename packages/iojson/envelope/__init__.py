"""Public envelope API: deferred-decode payload container and wire format."""

from .envelope import Envelope, new_envelope
from .fragments import (
    FragmentArray,
    FragmentMap,
    RawFragment,
    Target,
    fragment_from_json,
    materialize,
    put,
)
from .locking import ReadWriteLock
from .wire import FALLBACK_MESSAGE, fallback_document, sanitize

__all__ = [
    "Envelope",
    "FALLBACK_MESSAGE",
    "FragmentArray",
    "FragmentMap",
    "RawFragment",
    "ReadWriteLock",
    "Target",
    "fallback_document",
    "fragment_from_json",
    "materialize",
    "new_envelope",
    "put",
    "sanitize",
]
