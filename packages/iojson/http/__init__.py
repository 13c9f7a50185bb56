"""Public HTTP API binding envelopes to FastAPI requests and httpx responses."""

from .adapter import (
    ENVELOPE_STATE_KEY,
    JSON_CONTENT_TYPE,
    EnvelopeResponse,
    add_envelope_route,
    echo,
    envelope_endpoint,
    error_endpoint,
    get_envelope,
)
from .client import EnvelopeClient
from .errors import (
    EnvelopeWriteError,
    HttpClientError,
    HttpError,
    HttpRequestError,
    HttpServerError,
    HttpStatusError,
)
from .server import (
    create_app,
    create_echo_app,
    read_envelope,
    read_limited_body,
    run_app,
)

__all__ = [
    "ENVELOPE_STATE_KEY",
    "JSON_CONTENT_TYPE",
    "EnvelopeClient",
    "EnvelopeResponse",
    "EnvelopeWriteError",
    "HttpClientError",
    "HttpError",
    "HttpRequestError",
    "HttpServerError",
    "HttpStatusError",
    "add_envelope_route",
    "create_app",
    "create_echo_app",
    "echo",
    "envelope_endpoint",
    "error_endpoint",
    "get_envelope",
    "read_envelope",
    "read_limited_body",
    "run_app",
]
