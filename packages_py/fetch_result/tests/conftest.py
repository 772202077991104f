"""
Shared fixtures for fetch_result tests.
"""
import inspect
import logging

import pytest

import httpx

from fetch_result.client import ResultClient
from fetch_result.settings import FetchResultSettings


BASE_URL = "https://api.example.com"


@pytest.fixture
def fast_settings():
    """Settings with two retries and millisecond delays."""
    return FetchResultSettings(
        number_of_retries=2,
        base_delay_seconds=0.01,
        jitter_upper_bound_ms=0,
    )


@pytest.fixture
def caller_logger():
    """Caller logger with a name no library module uses."""
    return logging.getLogger("tests.fetch_result.caller")


@pytest.fixture
def mock_http():
    """
    Factory for an httpx.AsyncClient over a MockTransport.

    Returns (client, sent) where sent records every request that reached
    the transport. The handler may be sync or async, and may raise.
    """
    def factory(handler):
        sent = []

        async def recording(request):
            sent.append(request)
            result = handler(request)
            if inspect.isawaitable(result):
                result = await result
            return result

        client = httpx.AsyncClient(
            transport=httpx.MockTransport(recording),
            base_url=BASE_URL,
        )
        return client, sent

    return factory


@pytest.fixture
def make_client(mock_http, fast_settings):
    """Factory for a ResultClient over a recording MockTransport."""
    def factory(handler, **kwargs):
        http_client, sent = mock_http(handler)
        kwargs.setdefault("settings", fast_settings)
        return ResultClient(http_client, **kwargs), sent

    return factory


def respond_in_order(*responses):
    """Handler returning the given responses (or raising given errors) in turn."""
    queue = list(responses)

    def handler(request):
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item(request)
        # Fresh response per attempt
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    return handler


@pytest.fixture
def sequence():
    """Expose respond_in_order to tests."""
    return respond_in_order
