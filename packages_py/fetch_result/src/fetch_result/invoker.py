"""
Single send attempt against the transport.
"""
import logging
from typing import Union

import httpx

from fetch_retry import CancellationToken, RetryPolicy, is_retryable_error

from .outcomes import TransportFailure

logger = logging.getLogger("fetch_result.invoker")


async def send_once(
    client: httpx.AsyncClient,
    request: httpx.Request,
    cancel_token: CancellationToken,
    policy: RetryPolicy,
) -> Union[httpx.Response, TransportFailure]:
    """
    Send one request, racing it against the cancellation token.

    The response is opened in streaming mode; whoever receives it must read
    and close it.

    Returns:
        The response, or a TransportFailure for network-level errors

    Raises:
        CanceledError: If the token fires before the response arrives
    """
    logger.debug(f"send_once: {request.method} {request.url}")
    try:
        return await cancel_token.run(client.send(request, stream=True))
    except (httpx.TransportError, OSError) as error:
        logger.debug(f"send_once: transport failure {type(error).__name__}: {error}")
        return TransportFailure(cause=error, retryable=is_retryable_error(error, policy))
