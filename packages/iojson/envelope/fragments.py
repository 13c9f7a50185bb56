"""Raw fragment store: staged JSON values awaiting a caller-supplied type.

Values are serialized once when staged and kept as immutable bytes. Nothing
is decoded until a caller asks for a fragment with a concrete ``Target``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Generic, Iterator, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_json

from packages.iojson.errors import (
    DecodeError,
    EncodingError,
    NilFragmentError,
    validation_summary,
)

T = TypeVar("T")

_NULL = b"null"


@dataclass(frozen=True)
class RawFragment:
    """One JSON-encoded value, stored unparsed."""

    raw: bytes

    @property
    def is_null(self) -> bool:
        """Return ``True`` when the fragment is the JSON literal ``null``."""
        return self.raw.strip() == _NULL

    def __bytes__(self) -> bytes:
        return self.raw


class Target(Generic[T]):
    """Mutable handle a fragment is materialized into.

    ``Target(Car)`` requests a ``Car``; ``Target()`` accepts any JSON value
    and decodes numbers as ``float``. After a successful lookup the decoded
    value sits in ``value`` and ``filled`` is ``True``. Envelope getters
    return the very handle they were given.
    """

    __slots__ = ("type_", "value", "filled")

    def __init__(self, type_: Any = Any) -> None:
        self.type_ = type_
        self.value: T | None = None
        self.filled = False

    def set(self, value: T | None) -> None:
        self.value = value
        self.filled = True

    def __repr__(self) -> str:
        type_name = getattr(self.type_, "__name__", repr(self.type_))
        return f"Target({type_name}, value={self.value!r})"


class FragmentArray:
    """Append-only, index-addressed fragment sequence."""

    def __init__(self) -> None:
        self._items: list[RawFragment] = []

    def append(self, fragment: RawFragment) -> None:
        self._items.append(fragment)

    def get(self, index: int) -> RawFragment | None:
        """Return the fragment at ``index`` or ``None`` when out of range.

        Negative indexes are out of range; position counts from the front only.
        """
        if index < 0 or index >= len(self._items):
            return None
        return self._items[index]

    def clear(self) -> None:
        self._items = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[RawFragment]:
        return iter(list(self._items))


class FragmentMap:
    """String-keyed fragment mapping; the last write for a key wins.

    Not synchronized on its own. ``Envelope`` guards it with a reader/writer
    lock.
    """

    def __init__(self) -> None:
        self._items: dict[str, RawFragment] = {}

    def put(self, key: str, fragment: RawFragment) -> None:
        self._items[key] = fragment

    def get(self, key: str) -> RawFragment | None:
        return self._items.get(key)

    def keys(self) -> list[str]:
        return list(self._items)

    def items(self) -> list[tuple[str, RawFragment]]:
        return list(self._items.items())

    def clear(self) -> None:
        self._items = {}

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


def put(value: Any) -> RawFragment:
    """Serialize one value into a compact raw fragment.

    Pydantic models, dataclasses, mappings, sequences, and scalars are
    supported; field aliases are honored. Raises ``EncodingError`` for cyclic
    structures and unsupported types.
    """
    if isinstance(value, RawFragment):
        return value
    try:
        raw = to_json(value, by_alias=True, inf_nan_mode="null")
    except (ValueError, TypeError) as exc:
        raise EncodingError(
            message=f"value of type {type(value).__name__} cannot be encoded: {exc}",
            cause=exc,
        ) from exc
    return RawFragment(raw=raw)


def fragment_from_json(raw: bytes | str) -> RawFragment:
    """Wrap already-encoded JSON text without re-serializing it."""
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    return RawFragment(raw=bytes(raw))


def materialize(fragment: RawFragment | None, target: Target[T]) -> Target[T]:
    """Decode ``fragment`` into ``target`` and return the same handle.

    Raises ``NilFragmentError`` when the fragment is missing, or when it is
    JSON ``null`` and the target type does not accept ``None``. Raises
    ``DecodeError`` when the JSON shape does not fit the target type.
    """
    if fragment is None:
        raise NilFragmentError(message="fragment is absent")

    if _is_untyped(target.type_):
        target.set(_decode_untyped(fragment))
        return target

    adapter = _adapter_for(target.type_)
    try:
        value = adapter.validate_json(fragment.raw, strict=True)
    except ValidationError as exc:
        if fragment.is_null:
            raise NilFragmentError(
                message=f"null fragment cannot be decoded into {_type_name(target.type_)}",
            ) from exc
        raise DecodeError(
            message=f"fragment cannot be decoded into {_type_name(target.type_)}: "
            f"{validation_summary(exc)}",
            cause=exc,
        ) from exc
    target.set(value)
    return target


def _decode_untyped(fragment: RawFragment) -> Any:
    """Decode to plain JSON values with every number as ``float``."""
    try:
        return json.loads(fragment.raw, parse_int=float)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeError(message=f"fragment is not valid JSON: {exc}", cause=exc) from exc


def _is_untyped(type_: Any) -> bool:
    return type_ is Any or type_ is object


def _adapter_for(type_: Any) -> TypeAdapter[Any]:
    """Return a cached adapter, building a fresh one for unhashable annotations."""
    try:
        return _cached_adapter(type_)
    except TypeError:
        return TypeAdapter(type_)


@lru_cache(maxsize=256)
def _cached_adapter(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


def _type_name(type_: Any) -> str:
    return getattr(type_, "__name__", None) or repr(type_)
