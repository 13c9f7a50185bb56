"""Bind one envelope to one request and flush it as the response body.

Handlers receive the envelope as an explicit argument; it is also stored on
``request.state`` under ``ENVELOPE_STATE_KEY`` for collaborators that only
hold the request. Whatever the handler does, the encoded envelope is the
whole response body.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Iterable

from fastapi import FastAPI, Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from packages.iojson.config import EnvelopeSettings
from packages.iojson.envelope import Envelope, new_envelope
from packages.iojson.errors import exception_to_message
from packages.iojson.logging import fields, get_logger, log_context

from .errors import EnvelopeWriteError

ENVELOPE_STATE_KEY = "iojson_envelope"
JSON_CONTENT_TYPE = "application/json; charset=UTF-8"

EnvelopeHandler = Callable[[Request, Envelope], Awaitable[None] | None]
Endpoint = Callable[[Request], Awaitable[Response]]

_LOGGER = get_logger(__name__)


class EnvelopeResponse(Response):
    """Response whose body is the encoded envelope."""

    media_type = JSON_CONTENT_TYPE

    def __init__(self, envelope: Envelope, *, status_code: int = 200) -> None:
        self.envelope = envelope
        super().__init__(content=envelope.encode(), status_code=status_code)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except OSError as exc:
            _LOGGER.error(
                "Envelope response write failed: bytes=%s",
                len(self.body),
                exc_info=exc,
            )
            raise EnvelopeWriteError(
                message="envelope response write failed",
                cause=exc,
            ) from exc


def echo(envelope: Envelope) -> EnvelopeResponse:
    """Return the response carrying ``envelope``."""
    return EnvelopeResponse(envelope)


def get_envelope(request: Request) -> Envelope:
    """Return the envelope bound to ``request`` by ``envelope_endpoint``."""
    envelope = getattr(request.state, ENVELOPE_STATE_KEY, None)
    if not isinstance(envelope, Envelope):
        raise LookupError("no envelope is bound to this request")
    return envelope


def envelope_endpoint(
    handler: EnvelopeHandler,
    *,
    settings: EnvelopeSettings | None = None,
) -> Endpoint:
    """Wrap ``handler(request, envelope)`` into a FastAPI endpoint.

    A handler exception is logged and recorded on the envelope with
    ``add_error``; the response is still the encoded envelope.
    """
    handler_name = getattr(handler, "__name__", type(handler).__name__)

    async def endpoint(request: Request) -> Response:
        envelope = new_envelope(settings)
        setattr(request.state, ENVELOPE_STATE_KEY, envelope)
        context = {
            fields.HTTP_METHOD: request.method,
            fields.HTTP_PATH: request.url.path,
            fields.HANDLER: handler_name,
        }
        with log_context(context):
            try:
                result = handler(request, envelope)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:  # noqa: BLE001
                _LOGGER.warning(
                    "Envelope handler failed: exception_type=%s",
                    type(exc).__name__,
                    exc_info=exc,
                )
                if not envelope.finalized:
                    envelope.add_error(exception_to_message(exc))

            response = echo(envelope)
            with log_context(envelope.log_fields()):
                _LOGGER.info("Envelope response ready")
        return response

    endpoint.__name__ = handler_name
    endpoint.__doc__ = handler.__doc__
    return endpoint


def error_endpoint(message: str = "") -> EnvelopeHandler:
    """Return a handler that only records one error.

    An empty ``message`` records a fixed marker naming this helper.
    """

    def record_error(request: Request, envelope: Envelope) -> None:
        envelope.add_error(message or "iojson.error_endpoint")

    return record_error


def add_envelope_route(
    app: FastAPI,
    path: str,
    handler: EnvelopeHandler,
    *,
    methods: Iterable[str] = ("GET",),
    settings: EnvelopeSettings | None = None,
    **route_kwargs: Any,
) -> None:
    """Register ``handler`` on ``app`` behind ``envelope_endpoint``."""
    app.add_api_route(
        path,
        envelope_endpoint(handler, settings=settings),
        methods=list(methods),
        response_class=EnvelopeResponse,
        **route_kwargs,
    )
