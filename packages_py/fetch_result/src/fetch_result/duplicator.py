"""
Request building and duplication.

An httpx request whose body is a stream can only be sent once, so the
pipeline never sends the caller's request itself. The body is buffered on
first use and every attempt gets a new request over its own copy of it.
"""
import logging
from typing import Any, AsyncIterable, Mapping, Optional, Union

import httpx

from .codec import Serializer
from .errors import CloneFailure, CodecError, RequestBuildError
from .types import HttpMethod

logger = logging.getLogger("fetch_result.duplicator")

# Recomputed by httpx from the buffered body
_FRAMING_HEADERS = ("content-length", "transfer-encoding")


def build_request(
    client: httpx.AsyncClient,
    method: HttpMethod,
    target: Union[str, httpx.URL],
    *,
    payload: Optional[Any] = None,
    headers: Optional[Mapping[str, str]] = None,
    codec: Serializer,
) -> httpx.Request:
    """
    Build the request for a call from a URI, method and optional payload.

    The client's base_url and default headers are applied.

    Raises:
        RequestBuildError: If the payload cannot be serialized
    """
    request_headers = dict(headers or {})
    content: Optional[bytes] = None

    if payload is not None:
        try:
            content = codec.serialize(payload)
        except CodecError as error:
            raise RequestBuildError(
                f"Could not build request for payload type ({type(payload).__name__})",
                payload_type=type(payload).__name__,
            ) from error
        if "content-type" not in {k.lower() for k in request_headers}:
            request_headers["content-type"] = getattr(
                codec, "content_type", "application/json"
            )

    return client.build_request(
        method, target, headers=request_headers, content=content
    )


class RequestDuplicator:
    """
    Produces independent, re-sendable copies of a request.

    Example:
        duplicator = RequestDuplicator(request)
        first = await duplicator.duplicate()
        second = await duplicator.duplicate()  # new request, new body buffer
    """

    def __init__(self, request: httpx.Request):
        self._request = request
        self._body: Optional[bytes] = None
        self._copies = 0

    async def _buffer(self) -> bytes:
        if self._body is None:
            try:
                if isinstance(self._request.stream, AsyncIterable):
                    self._body = await self._request.aread()
                else:
                    self._body = self._request.read()
            except httpx.StreamError as error:
                raise CloneFailure(
                    f"Request body for {self._request.method} {self._request.url} "
                    f"cannot be re-read: {error}"
                ) from error
        return self._body

    async def duplicate(self) -> httpx.Request:
        """
        Return a structurally identical, independent request.

        Raises:
            CloneFailure: If the original body cannot be re-read
        """
        body = await self._buffer()
        headers = self._request.headers.copy()
        for name in _FRAMING_HEADERS:
            if name in headers:
                del headers[name]

        self._copies += 1
        logger.debug(
            f"RequestDuplicator.duplicate: copy #{self._copies} of "
            f"{self._request.method} {self._request.url} ({len(body)} bytes)"
        )

        return httpx.Request(
            self._request.method,
            self._request.url,
            headers=headers,
            content=bytes(memoryview(body)),
            extensions=dict(self._request.extensions),
        )

    @property
    def copies(self) -> int:
        """Number of duplicates handed out."""
        return self._copies

    @property
    def original(self) -> httpx.Request:
        """The caller's request."""
        return self._request
