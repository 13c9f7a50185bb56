"""Envelope accumulating payload fragments and error messages for one unit of work.

Application code stages values with ``add_obj``/``add_data`` (serialized
immediately into raw fragments), reads them back on demand with
``get_obj``/``get_data`` into a caller-supplied ``Target``, records failures
with ``add_error``, and finishes with exactly one ``encode`` (outbound) or
``decode`` (inbound).

When any error has been recorded, ``encode`` discards every staged fragment
before serializing: a failed unit of work reports its errors and nothing
else.

Only the keyed ``data`` map is safe to share across threads. Calls touching
``objects`` or ``errors`` must come from one owning thread, or the caller
serializes them.
"""

from __future__ import annotations

import inspect
import os
from typing import IO, Any, TypeVar

from pydantic_core import from_json, to_json

from packages.iojson.config import EnvelopeSettings
from packages.iojson.errors import (
    DecodeError,
    EnvelopeFinalizedError,
    IndexOutOfRange,
    KeyNotFoundError,
    SizeLimitExceeded,
)
from packages.iojson.logging import fields, get_logger, log_context
from packages.iojson.sizes import DEFAULT_MAX_DECODE_BYTES

from . import wire
from .fragments import FragmentArray, FragmentMap, RawFragment, Target, materialize, put
from .locking import ReadWriteLock

T = TypeVar("T")

_LOGGER = get_logger(__name__)


class Envelope:
    """Status, error list, and deferred-decode payload for one unit of work."""

    def __init__(
        self,
        *,
        max_decode_bytes: int = DEFAULT_MAX_DECODE_BYTES,
        debug: bool = False,
    ) -> None:
        if max_decode_bytes <= 0:
            raise ValueError("max_decode_bytes must be positive")
        self._max_decode_bytes = max_decode_bytes
        self._debug = debug
        self._status = False
        self._errors: list[str] = []
        self._objects = FragmentArray()
        self._data = FragmentMap()
        self._data_lock = ReadWriteLock()
        self._finalized = False
        self._encoded: bytes | None = None

    @classmethod
    def from_settings(cls, settings: EnvelopeSettings) -> Envelope:
        """Build an envelope honoring configured size limit and debug flag."""
        return cls(max_decode_bytes=settings.max_decode_bytes, debug=settings.debug)

    @property
    def status(self) -> bool:
        """Status computed by the last ``encode`` or read by ``decode``."""
        return self._status

    @property
    def errors(self) -> tuple[str, ...]:
        return tuple(self._errors)

    @property
    def error_count(self) -> int:
        return len(self._errors)

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def object_count(self) -> int:
        return len(self._objects)

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def max_decode_bytes(self) -> int:
        return self._max_decode_bytes

    def data_keys(self) -> list[str]:
        with self._data_lock.read():
            return self._data.keys()

    def add_obj(self, value: Any) -> None:
        """Serialize ``value`` and append it to the object array.

        Raises ``EncodingError`` without appending anything when the value
        cannot be serialized.
        """
        self._ensure_open("add_obj")
        self._objects.append(put(value))

    def get_obj(self, index: int, target: Target[T]) -> Target[T]:
        """Decode the object at ``index`` into ``target`` and return ``target``."""
        fragment = self._objects.get(index)
        if fragment is None:
            raise IndexOutOfRange(
                message=f"index {index} is out of range for {len(self._objects)} objects",
                key=index,
                length=len(self._objects),
            )
        return materialize(fragment, target)

    def obj_as(self, index: int, type_: type[T]) -> T:
        """Return the object at ``index`` decoded as ``type_``."""
        return self.get_obj(index, Target(type_)).value  # type: ignore[return-value]

    def raw_obj(self, index: int) -> RawFragment | None:
        return self._objects.get(index)

    def add_data(self, key: str, value: Any) -> None:
        """Serialize ``value`` and store it under ``key``, replacing any previous value."""
        self._ensure_open("add_data")
        fragment = put(value)
        with self._data_lock.write():
            self._data.put(key, fragment)

    def get_data(self, key: str, target: Target[T]) -> Target[T]:
        """Decode the value stored under ``key`` into ``target`` and return ``target``."""
        with self._data_lock.read():
            fragment = self._data.get(key)
            if fragment is None:
                raise KeyNotFoundError(message=f"{key} key does not exist", key=key)
            return materialize(fragment, target)

    def data_as(self, key: str, type_: type[T]) -> T:
        """Return the value under ``key`` decoded as ``type_``."""
        return self.get_data(key, Target(type_)).value  # type: ignore[return-value]

    def raw_data(self, key: str) -> RawFragment | None:
        with self._data_lock.read():
            return self._data.get(key)

    def add_error(self, message: str) -> None:
        """Record one error line; status flips to false at encode time."""
        self._ensure_open("add_error")
        if not isinstance(message, str):
            raise TypeError(f"error message must be str, not {type(message).__name__}")
        if self._debug:
            message = f"{message} ({_caller_location()})"
        self._errors.append(message)

    def encode(self) -> bytes:
        """Finalize and serialize the envelope to one compact JSON document.

        Never raises. A serializer failure yields the fixed fallback document
        and is logged. Repeated calls return the first result.
        """
        if self._encoded is not None:
            return self._encoded

        self._finalized = True
        if self._errors:
            self._status = False
            with self._data_lock.write():
                _LOGGER.debug(
                    "Discarding staged payload: errors=%s objects=%s data=%s",
                    len(self._errors),
                    len(self._objects),
                    len(self._data),
                )
                self._objects.clear()
                self._data.clear()
        else:
            self._status = True

        try:
            with self._data_lock.read():
                document = wire.assemble(
                    status=self._status,
                    errors=self._errors,
                    objects=self._objects,
                    data=self._data.items(),
                )
        except Exception as exc:  # noqa: BLE001
            with log_context({fields.ERROR_COUNT: len(self._errors)}):
                _LOGGER.error("Envelope encode failed; emitting fallback document", exc_info=exc)
            self._status = False
            document = self._fallback(exc)

        self._encoded = document
        return document

    def encode_pretty(self) -> bytes:
        """Same as ``encode`` but indented for humans."""
        compact = self.encode()
        try:
            return to_json(from_json(compact), indent=2)
        except ValueError as exc:
            _LOGGER.error("Envelope indent failed; emitting fallback document", exc_info=exc)
            return self._fallback(exc)

    def encode_string(self) -> str:
        return self.encode().decode("utf-8")

    def decode(self, source: bytes | bytearray | str | IO[bytes], max_bytes: int | None = None) -> None:
        """Replace this envelope's contents with one inbound document.

        ``source`` is a byte string or a binary stream. At most ``max_bytes``
        (default: the envelope's configured limit) are read; anything longer
        raises ``SizeLimitExceeded`` before parsing. Malformed documents raise
        ``DecodeError``. Payload values are stored as raw fragments.
        """
        self._ensure_open("decode")
        limit = self._max_decode_bytes if max_bytes is None else max_bytes
        if limit <= 0:
            raise ValueError("max_bytes must be positive")

        try:
            raw = _read_limited(source, limit)
        except SizeLimitExceeded as exc:
            with log_context({fields.LIMIT: limit}):
                _LOGGER.warning("Envelope decode rejected: %s", exc)
            raise

        try:
            status, errors, objects, data = wire.parse(raw)
        except DecodeError as exc:
            with log_context({fields.BYTES: len(raw)}):
                _LOGGER.warning("Envelope decode rejected: %s", exc)
            raise

        self._finalized = True
        self._status = status
        self._errors = errors
        self._objects = FragmentArray()
        for fragment in objects:
            self._objects.append(fragment)
        with self._data_lock.write():
            self._data.clear()
            for key, fragment in data.items():
                self._data.put(key, fragment)

    def _fallback(self, exc: BaseException) -> bytes:
        if self._debug:
            return wire.fallback_document(f"{wire.FALLBACK_MESSAGE}: {exc}")
        return wire.fallback_document()

    def _ensure_open(self, operation: str) -> None:
        if self._finalized:
            raise EnvelopeFinalizedError(
                message=f"{operation} is not allowed after the envelope was finalized",
            )

    def log_fields(self) -> dict[str, object]:
        """Return status and section counts keyed by logging field name."""
        return {
            fields.STATUS: self._status,
            fields.ERROR_COUNT: len(self._errors),
            fields.OBJECT_COUNT: len(self._objects),
            fields.DATA_COUNT: len(self._data),
        }

    def __repr__(self) -> str:
        return (
            f"Envelope(status={self._status}, errors={len(self._errors)}, "
            f"objects={len(self._objects)}, data={len(self._data)}, "
            f"finalized={self._finalized})"
        )


def new_envelope(settings: EnvelopeSettings | None = None) -> Envelope:
    """Return a fresh envelope, configured from ``settings`` when given."""
    if settings is None:
        return Envelope()
    return Envelope.from_settings(settings)


def _read_limited(source: bytes | bytearray | str | IO[bytes], limit: int) -> bytes:
    """Read at most ``limit`` bytes, failing as soon as the source is longer."""
    if isinstance(source, str):
        source = source.encode("utf-8")
    if isinstance(source, (bytes, bytearray)):
        if len(source) > limit:
            raise _size_error(limit)
        return bytes(source)

    buffer = bytearray()
    try:
        while len(buffer) <= limit:
            chunk = source.read(limit + 1 - len(buffer))
            if not chunk:
                break
            buffer.extend(chunk)
    except OSError as exc:
        raise DecodeError(message=f"envelope source read failed: {exc}", cause=exc) from exc
    if len(buffer) > limit:
        raise _size_error(limit)
    return bytes(buffer)


def _size_error(limit: int) -> SizeLimitExceeded:
    return SizeLimitExceeded(
        message=f"envelope document exceeds {limit} bytes",
        limit=limit,
    )


def _caller_location() -> str:
    """Describe the frame that called ``add_error``."""
    frame = inspect.currentframe()
    try:
        caller = frame.f_back.f_back if frame is not None and frame.f_back is not None else None
        if caller is None:
            return "unknown caller"
        code = caller.f_code
        return f"{code.co_name} {os.path.basename(code.co_filename)}:{caller.f_lineno}"
    finally:
        del frame
