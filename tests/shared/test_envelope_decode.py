"""Tests for inbound envelope decoding and round-trip behavior."""

from __future__ import annotations

import io

import pytest
from pydantic import BaseModel

from packages.iojson.envelope import Envelope, Target
from packages.iojson.errors import (
    DecodeError,
    EnvelopeFinalizedError,
    IndexOutOfRange,
    KeyNotFoundError,
    NilFragmentError,
    SizeLimitExceeded,
)


class Item(BaseModel):
    Name: str = ""


class Car(BaseModel):
    Name: str = ""
    ItemArr: list[Item] | None = None


class _CountingStream(io.BytesIO):
    """BytesIO that records how many bytes callers pulled."""

    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.pulled = 0

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        self.pulled += len(chunk)
        return chunk


def test_decode_then_get_data_into_model() -> None:
    """A decoded ObjMap entry should materialize into the requested model."""
    envelope = Envelope()
    envelope.decode(b'{"ObjMap":{"Car":{"Name":"BMW"}}}')

    car = envelope.get_data("Car", Target(Car)).value

    assert car == Car(Name="BMW")


def test_decode_reads_status_and_errors() -> None:
    """Status and ErrArr should be taken from the document."""
    envelope = Envelope()
    envelope.decode(b'{"Status":false,"ErrArr":["bad input"],"ObjArr":[],"ObjMap":{}}')

    assert envelope.status is False
    assert envelope.errors == ("bad input",)


def test_decode_from_stream() -> None:
    """decode should accept a binary stream."""
    envelope = Envelope()
    envelope.decode(io.BytesIO(b'{"Status":true,"ObjArr":[[{"Name":"Car","ItemArr":[{"Name":"Bag"}]}]]}'))

    cars = envelope.get_obj(0, Target(list[Car])).value

    assert envelope.status is True
    assert cars is not None
    assert cars[0].ItemArr == [Item(Name="Bag")]


def test_decode_null_sections_become_empty() -> None:
    """Null or missing arrays and maps should decode to empty sections."""
    envelope = Envelope()
    envelope.decode(b'{"ErrArr":null,"ObjArr":null}')

    assert envelope.errors == ()
    assert envelope.object_count == 0
    assert envelope.data_keys() == []


def test_decode_ignores_unknown_keys() -> None:
    """Extra top-level keys should not break decoding."""
    envelope = Envelope()
    envelope.decode(b'{"Status":true,"ErrCount":0,"ObjMap":{"Amt":123.8}}')

    assert envelope.get_data("Amt", Target()).value == 123.8


def test_decode_primitive_fragments() -> None:
    """String, number, null, and empty-object fragments should decode."""
    envelope = Envelope()
    envelope.decode(
        b'{"ObjMap":{"Hello":"World","Amt":123.8,"Null":null,"Braces":{},"Empty":""}}'
    )

    assert envelope.data_as("Hello", str) == "World"
    assert envelope.data_as("Amt", float) == 123.8
    assert envelope.data_as("Braces", dict) == {}
    assert envelope.data_as("Empty", str) == ""
    assert envelope.data_as("Null", str | None) is None
    with pytest.raises(NilFragmentError):
        envelope.get_data("Null", Target(str))


def test_decode_then_lookup_miss() -> None:
    """Missing keys and indexes should be reported after decoding."""
    envelope = Envelope()
    envelope.decode(b'{"ObjArr":["World"],"ObjMap":{}}')

    with pytest.raises(KeyNotFoundError):
        envelope.get_data("None", Target())
    with pytest.raises(IndexOutOfRange):
        envelope.get_obj(1, Target(str))


def test_decode_malformed_json_raises_decode_error() -> None:
    """Invalid JSON should raise DecodeError and leave the envelope open."""
    envelope = Envelope()

    with pytest.raises(DecodeError):
        envelope.decode(b'{"ObjMap":')

    assert envelope.finalized is False


def test_decode_wrong_shape_raises_decode_error() -> None:
    """A document whose sections have the wrong types should be rejected."""
    envelope = Envelope()

    with pytest.raises(DecodeError):
        envelope.decode(b'{"ErrArr":"not a list"}')


@pytest.mark.parametrize("status", [b'"true"', b"1", b"0"])
def test_decode_rejects_non_boolean_status(status: bytes) -> None:
    """Status must be a JSON boolean; strings and numbers are not coerced."""
    envelope = Envelope()

    with pytest.raises(DecodeError):
        envelope.decode(b'{"Status":' + status + b"}")

    assert envelope.finalized is False


def test_decode_rejects_oversized_bytes() -> None:
    """Input longer than max_bytes should raise SizeLimitExceeded."""
    envelope = Envelope()
    payload = b'{"ObjMap":{"k":"' + b"x" * 100 + b'"}}'

    with pytest.raises(SizeLimitExceeded) as exc_info:
        envelope.decode(payload, max_bytes=32)

    assert exc_info.value.limit == 32
    assert isinstance(exc_info.value, DecodeError)
    assert envelope.data_keys() == []


def test_decode_stream_reads_at_most_limit_plus_one() -> None:
    """An oversized stream should never be read past the limit."""
    stream = _CountingStream(b" " * 10_000)
    envelope = Envelope(max_decode_bytes=64)

    with pytest.raises(SizeLimitExceeded):
        envelope.decode(stream)

    assert stream.pulled == 65


def test_decode_accepts_input_exactly_at_limit() -> None:
    """A document exactly max_bytes long should decode."""
    document = b'{"Status":true}'
    envelope = Envelope()

    envelope.decode(document, max_bytes=len(document))

    assert envelope.status is True


def test_decode_finalizes_envelope() -> None:
    """A decoded envelope should reject further mutation."""
    envelope = Envelope()
    envelope.decode(b"{}")

    with pytest.raises(EnvelopeFinalizedError):
        envelope.add_data("k", 1)
    with pytest.raises(EnvelopeFinalizedError):
        envelope.decode(b"{}")


def test_round_trip_preserves_fragment_bytes() -> None:
    """Decoding an encoded envelope should reproduce each fragment exactly."""
    original = Envelope()
    original.add_obj(Car(Name="My luxury car", ItemArr=[Item(Name="Bag")]))
    original.add_obj([1, 2.5, "ü", None])
    original.add_data("Car", Car(Name="BMW"))
    original.add_data("Age", 18)
    original.add_data("Amt", 123.8)

    decoded = Envelope()
    decoded.decode(original.encode())

    assert decoded.status is original.status is True
    assert decoded.errors == original.errors
    assert decoded.object_count == original.object_count
    for index in range(original.object_count):
        assert decoded.raw_obj(index) == original.raw_obj(index)
    assert decoded.data_keys() == original.data_keys()
    for key in original.data_keys():
        assert decoded.raw_data(key) == original.raw_data(key)


def test_round_trip_of_failed_envelope() -> None:
    """A failed envelope should round-trip its status and errors only."""
    original = Envelope()
    original.add_data("Car", {"Name": "BMW"})
    original.add_error("bad input")

    decoded = Envelope()
    decoded.decode(original.encode())

    assert decoded.status is False
    assert decoded.errors == ("bad input",)
    assert decoded.data_keys() == []
