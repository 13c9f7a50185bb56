"""Typed errors for envelope HTTP client and server helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass(eq=False)
class HttpError(Exception):
    """Base error type for envelope HTTP helper failures."""

    message: str

    def __str__(self) -> str:
        """Return the human-readable error message."""
        return self.message


@dataclass(eq=False)
class HttpClientError(HttpError):
    """Base error for outbound envelope fetch failures."""

    method: str
    url: str
    retryable: bool = False


@dataclass(eq=False)
class HttpRequestError(HttpClientError):
    """HTTP client transport-level failure."""

    cause: Exception | None = None


@dataclass(eq=False)
class HttpStatusError(HttpClientError):
    """Non-success status code whose body is not an envelope document."""

    status_code: int = 0
    response_body: str = ""
    response_headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class HttpServerError(HttpError):
    """Base error type for inbound/outbound server-side helpers."""


@dataclass(eq=False)
class EnvelopeWriteError(HttpServerError):
    """Writing the encoded envelope to the response stream failed."""

    cause: Exception | None = None
