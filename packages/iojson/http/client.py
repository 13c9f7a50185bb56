"""Envelope-aware HTTP client over httpx.

Responses are streamed under the envelope's byte cap and decoded into an
``Envelope``; the body is never buffered past the limit.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from packages.iojson.config import EnvelopeSettings
from packages.iojson.envelope import Envelope
from packages.iojson.errors import DecodeError, SizeLimitExceeded

from .adapter import JSON_CONTENT_TYPE
from .errors import HttpRequestError, HttpStatusError


def _status_error(response: httpx.Response, body: bytes) -> HttpStatusError:
    """Build a typed status error from one HTTP response."""
    status_code = response.status_code
    retryable = status_code >= 500 or status_code == 429
    return HttpStatusError(
        message=f"HTTP {status_code} for {response.request.method} {response.request.url}",
        method=response.request.method,
        url=str(response.request.url),
        retryable=retryable,
        status_code=status_code,
        response_body=body.decode("utf-8", errors="replace"),
        response_headers=dict(response.headers.items()),
    )


class EnvelopeClient:
    """Thin synchronous wrapper over ``httpx.Client`` returning envelopes."""

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        settings: EnvelopeSettings | None = None,
        transport: httpx.BaseTransport | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """Create a new envelope client wrapper."""
        self._settings = settings or EnvelopeSettings()
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={"Accept": JSON_CONTENT_TYPE, **dict(headers or {})},
            transport=transport,
        )

    def close(self) -> None:
        """Close underlying transport resources when owned."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> EnvelopeClient:
        """Enter context manager scope."""
        return self

    def __exit__(self, *_: object) -> None:
        """Exit context manager scope and close client."""
        self.close()

    def fetch(self, method: str, url: str, **kwargs: Any) -> Envelope:
        """Issue one request and decode the response body as an envelope.

        Error statuses still decode when the body is an envelope document,
        since servers report failures through ``Status``/``ErrArr``. An error
        status with any other body raises ``HttpStatusError``.
        """
        limit = self._settings.max_decode_bytes
        try:
            request = self._client.build_request(method=method, url=url, **kwargs)
            response = self._client.send(request, stream=True)
            try:
                body = _read_capped(response, limit)
            finally:
                response.close()
        except httpx.RequestError as exc:
            failed = exc.request
            request_url = str(failed.url) if failed is not None else url
            request_method = failed.method if failed is not None else method.upper()
            raise HttpRequestError(
                message=f"HTTP request failed for {request_method} {request_url}",
                method=request_method,
                url=request_url,
                retryable=True,
                cause=exc,
            ) from exc

        envelope = Envelope.from_settings(self._settings)
        try:
            envelope.decode(body, max_bytes=limit)
        except DecodeError:
            if response.is_error:
                raise _status_error(response, body) from None
            raise
        return envelope

    def get(self, url: str, **kwargs: Any) -> Envelope:
        """Fetch one envelope with GET."""
        return self.fetch("GET", url, **kwargs)

    def post(self, url: str, *, envelope: Envelope | None = None, **kwargs: Any) -> Envelope:
        """POST ``envelope`` (encoded) and decode the envelope that comes back."""
        if envelope is not None:
            kwargs["content"] = envelope.encode()
            kwargs["headers"] = {"Content-Type": JSON_CONTENT_TYPE, **dict(kwargs.get("headers") or {})}
        return self.fetch("POST", url, **kwargs)


def _read_capped(response: httpx.Response, limit: int) -> bytes:
    """Read at most ``limit`` body bytes, failing once the body is longer."""
    body = bytearray()
    for chunk in response.iter_bytes():
        body.extend(chunk)
        if len(body) > limit:
            raise SizeLimitExceeded(
                message=f"response body exceeds {limit} bytes",
                limit=limit,
            )
    return bytes(body)
