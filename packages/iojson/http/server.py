"""FastAPI and uvicorn helpers for envelope services."""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI, Request

from packages.iojson.config import EnvelopeSettings
from packages.iojson.envelope import Envelope
from packages.iojson.errors import SizeLimitExceeded

from .adapter import add_envelope_route


def create_app(*, title: str = "iojson", version: str = "0.0.0") -> FastAPI:
    """Create a FastAPI app with project defaults."""
    return FastAPI(title=title, version=version)


def run_app(
    app: FastAPI,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Run one FastAPI app through uvicorn."""
    uvicorn.run(app, host=host, port=port, log_level=log_level)


async def read_limited_body(request: Request, *, max_bytes: int) -> bytes:
    """Stream the request body, failing as soon as it grows past ``max_bytes``.

    A declared ``Content-Length`` above the cap is rejected before reading.
    """
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise _size_error(max_bytes)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise _size_error(max_bytes)
    return bytes(body)


async def read_envelope(
    request: Request,
    *,
    max_bytes: int | None = None,
    settings: EnvelopeSettings | None = None,
) -> Envelope:
    """Decode the request body into a new envelope.

    Raises ``SizeLimitExceeded`` or ``DecodeError`` for oversized or malformed
    bodies.
    """
    envelope = Envelope.from_settings(settings) if settings is not None else Envelope()
    limit = envelope.max_decode_bytes if max_bytes is None else max_bytes
    body = await read_limited_body(request, max_bytes=limit)
    envelope.decode(body, max_bytes=limit)
    return envelope


def create_echo_app(settings: EnvelopeSettings | None = None) -> FastAPI:
    """Build a service that re-emits any envelope posted to ``/echo``.

    Decode failures become the response's error list, so callers always get
    a well-formed envelope back.
    """
    app = create_app(title="iojson-echo")
    envelope_settings = settings or EnvelopeSettings()

    async def echo_handler(request: Request, envelope: Envelope) -> None:
        inbound = await read_envelope(request, settings=envelope_settings)
        for message in inbound.errors:
            envelope.add_error(message)
        for index in range(inbound.object_count):
            envelope.add_obj(inbound.raw_obj(index))
        for key in inbound.data_keys():
            envelope.add_data(key, inbound.raw_data(key))

    def health_handler(request: Request, envelope: Envelope) -> None:
        envelope.add_data("service", "iojson-echo")

    add_envelope_route(app, "/echo", echo_handler, methods=("POST",), settings=envelope_settings)
    add_envelope_route(app, "/health", health_handler, methods=("GET",), settings=envelope_settings)
    return app


def _size_error(limit: int) -> SizeLimitExceeded:
    return SizeLimitExceeded(message=f"request body exceeds {limit} bytes", limit=limit)
