"""
Retry-and-classify execution pipeline.

Per attempt: duplicate the request, send the copy, classify the response.
The retry executor decides from the returned outcome whether to go again.
"""
import logging
from typing import Optional

import httpx

from fetch_retry import (
    CancellationToken,
    RetryExecutor,
    RetryListener,
    RetryPolicy,
    RetryResult,
)

from .classifier import ResponseClassifier
from .duplicator import RequestDuplicator
from .errors import CloneFailure
from .invoker import send_once
from .outcomes import AttemptOutcome, TransportFailure, describe, is_retryable

logger = logging.getLogger("fetch_result.pipeline")


class ExecutionPipeline:
    """
    Runs one logical call: attempts are strictly sequential.

    Example:
        pipeline = ExecutionPipeline(client, policy, classifier)
        result = await pipeline.run(request, CancellationToken())
        result.outcome, result.attempts
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        policy: RetryPolicy,
        classifier: ResponseClassifier,
        *,
        logger: Optional[logging.Logger] = None,
        log: bool = True,
        on_retry: Optional[RetryListener] = None,
    ):
        self._client = client
        self._policy = policy
        self._classifier = classifier
        self._executor: RetryExecutor[AttemptOutcome] = RetryExecutor(
            policy, logger=logger, log=log, on_retry=on_retry
        )

    async def run(
        self,
        request: httpx.Request,
        cancel_token: CancellationToken,
    ) -> RetryResult[AttemptOutcome]:
        """
        Execute the request under the retry policy.

        Raises:
            CanceledError: If the token fires before a terminal outcome
        """
        duplicator = RequestDuplicator(request)

        async def attempt(index: int) -> AttemptOutcome:
            logger.debug(f"ExecutionPipeline.run: attempt {index + 1} for {request.method} {request.url}")
            try:
                copy = await duplicator.duplicate()
            except CloneFailure as error:
                # Every later attempt would fail the same way
                return TransportFailure(cause=error, retryable=False)

            sent = await send_once(self._client, copy, cancel_token, self._policy)
            if isinstance(sent, TransportFailure):
                return sent
            return await self._classifier.classify(sent, cancel_token)

        result = await self._executor.execute(
            attempt,
            is_retryable,
            cancel_token=cancel_token,
            describe=describe,
        )
        logger.debug(
            f"ExecutionPipeline.run: {result.outcome.kind.value} after "
            f"{result.attempts} attempt(s) for {request.method} {request.url}"
        )
        return result
