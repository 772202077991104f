"""
Factory functions for creating result clients
"""
import logging
from typing import Any, Optional

import httpx

from fetch_retry import RetryListener, RetryPolicy

from .client import ResultClient
from .codec import Serializer
from .settings import FetchResultSettings


def create_result_client(
    *,
    base_url: Optional[str] = None,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    logger: Optional[logging.Logger] = None,
    codec: Optional[Serializer] = None,
    policy: Optional[RetryPolicy] = None,
    settings: Optional[FetchResultSettings] = None,
    on_retry: Optional[RetryListener] = None,
    **client_kwargs: Any,
) -> ResultClient:
    """
    Create a ResultClient over a new httpx.AsyncClient it owns.

    Args:
        base_url: Base URL for requests
        timeout: Transport timeout in seconds. Default: 30.0
        transport: Custom transport (e.g. httpx.MockTransport in tests)
        logger: Default caller logger
        codec: Body codec. Default: JsonCodec
        policy: Retry policy. Default: built from settings
        settings: Settings. Default: get_settings()
        on_retry: Observer called before each retry
        **client_kwargs: Additional arguments for httpx.AsyncClient

    Returns:
        ResultClient that closes its transport on aclose()

    Example:
        async with create_result_client(base_url="https://api.example.com") as client:
            todo = await client.send_to_type("/todos/1", Todo)
    """
    http_client = httpx.AsyncClient(
        transport=transport,
        base_url=base_url or "",
        timeout=timeout,
        **client_kwargs,
    )
    return ResultClient(
        http_client,
        codec=codec,
        logger=logger,
        policy=policy,
        settings=settings,
        on_retry=on_retry,
        owns_client=True,
    )
