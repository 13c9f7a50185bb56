"""Wire format for the envelope document.

The document is always one JSON object with four fixed keys::

    {"Status": bool, "ErrArr": [str], "ObjArr": [any], "ObjMap": {str: any}}

Encoding splices stored raw fragments into the document without decoding
them. Decoding accepts the same shape and turns every payload value back
into a raw fragment.
"""

from __future__ import annotations

from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_core import to_json

from packages.iojson.errors import DecodeError, validation_summary

from .fragments import RawFragment, put

STATUS_KEY = "Status"
ERRORS_KEY = "ErrArr"
OBJECTS_KEY = "ObjArr"
DATA_KEY = "ObjMap"

FALLBACK_MESSAGE = "Encode failed. Check log"

_STRIPPED_CHARS = {'"', "\\"}


class WireEnvelope(BaseModel):
    """Inbound document shape; payload values are kept as plain JSON."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, strict=True)

    status: bool | None = Field(default=None, alias=STATUS_KEY)
    errors: list[str] | None = Field(default=None, alias=ERRORS_KEY)
    objects: list[Any] | None = Field(default=None, alias=OBJECTS_KEY)
    data: dict[str, Any] | None = Field(default=None, alias=DATA_KEY)


def assemble(
    *,
    status: bool,
    errors: Iterable[str],
    objects: Iterable[RawFragment],
    data: Iterable[tuple[str, RawFragment]],
) -> bytes:
    """Build the compact document from already-encoded fragments.

    Raises whatever the scalar encoder raises for a non-representable error
    string or key; ``Envelope.encode`` owns the fallback for that case.
    """
    parts = [
        b'{"',
        STATUS_KEY.encode(),
        b'":',
        b"true" if status else b"false",
        b',"',
        ERRORS_KEY.encode(),
        b'":',
        to_json(list(errors)),
        b',"',
        OBJECTS_KEY.encode(),
        b'":[',
        b",".join(fragment.raw for fragment in objects),
        b'],"',
        DATA_KEY.encode(),
        b'":{',
        b",".join(to_json(key) + b":" + fragment.raw for key, fragment in data),
        b"}}",
    ]
    return b"".join(parts)


def parse(raw: bytes) -> tuple[bool, list[str], list[RawFragment], dict[str, RawFragment]]:
    """Parse one inbound document into status, errors, and raw fragments."""
    try:
        wire = WireEnvelope.model_validate_json(raw)
    except ValidationError as exc:
        raise DecodeError(
            message=f"envelope document is invalid: {validation_summary(exc)}",
            cause=exc,
        ) from exc

    objects = [put(value) for value in wire.objects or []]
    data = {key: put(value) for key, value in (wire.data or {}).items()}
    return bool(wire.status), list(wire.errors or []), objects, data


def sanitize(text: str) -> str:
    """Drop quote, backslash, and control characters from one message."""
    return "".join(
        char for char in text if char not in _STRIPPED_CHARS and ord(char) >= 0x20
    )


def fallback_document(message: str = FALLBACK_MESSAGE) -> bytes:
    """Return the hand-built failure document.

    This path never calls the JSON encoder: the message is sanitized and
    spliced into a fixed template, so it cannot fail.
    """
    text = (
        '{"' + STATUS_KEY + '":false,"' + ERRORS_KEY + '":["'
        + sanitize(message)
        + '"],"' + OBJECTS_KEY + '":[],"' + DATA_KEY + '":{}}'
    )
    return text.encode("utf-8", errors="replace")
