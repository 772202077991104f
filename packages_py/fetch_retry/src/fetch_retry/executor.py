"""
Main retry executor implementation
"""
import logging
import time
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .cancellation import CancellationToken
from .config import calculate_backoff_delay, merge_policy
from .types import RetryListener, RetryPolicy, RetryResult


T = TypeVar("T")

module_logger = logging.getLogger("fetch_retry.executor")


class RetryExecutor(Generic[T]):
    """
    Retry Executor

    Runs an attempt function until it produces a terminal outcome or the
    retry budget is spent:
    - Bounded number of retries
    - Exponential backoff with jitter
    - Retry decision taken from the returned outcome, not from exceptions
    - Cooperative cancellation before each attempt and during delays
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        *,
        logger: Optional[logging.Logger] = None,
        log: bool = True,
        on_retry: Optional[RetryListener] = None,
    ):
        """
        Create a new RetryExecutor.

        Args:
            policy: Retry policy
            logger: Optional logger receiving a warning per retry
            log: Set to False to suppress the retry warnings
            on_retry: Optional observer called before each retry
        """
        self._policy = merge_policy(policy)
        self._logger = logger
        self._log = log
        self._listeners: list[RetryListener] = []
        if on_retry is not None:
            self._listeners.append(on_retry)

    def _notify(self, outcome: T, attempt: int, delay: float) -> None:
        """Notify all retry observers."""
        for listener in self._listeners:
            try:
                listener(outcome, attempt, delay)
            except Exception as error:
                module_logger.debug(f"Ignoring retry listener error: {error!r}")

    async def execute(
        self,
        attempt_fn: Callable[[int], Awaitable[T]],
        is_retryable: Callable[[T], bool],
        *,
        cancel_token: Optional[CancellationToken] = None,
        describe: Callable[[T], str] = str,
    ) -> RetryResult[T]:
        """
        Execute an attempt function with retry logic.

        Args:
            attempt_fn: Async function receiving the attempt index (0 for the
                first attempt) and returning an outcome
            is_retryable: Predicate deciding whether an outcome is retried
            cancel_token: Cancellation signal checked before every attempt
                and during delays
            describe: Renders an outcome for the retry log line

        Returns:
            Result with the final outcome and retry metadata

        Raises:
            CanceledError: If the token fires; no further attempts are made

        Example:
            executor = RetryExecutor(RetryPolicy(max_retries=2))
            result = await executor.execute(attempt, lambda o: o.retryable)
        """
        token = cancel_token or CancellationToken()
        max_retries = self._policy.max_retries

        start_time = time.monotonic()
        delays: list[float] = []
        attempt = 0

        while True:
            token.raise_if_cancelled()

            outcome = await attempt_fn(attempt)

            if not is_retryable(outcome) or attempt >= max_retries:
                return RetryResult(
                    outcome=outcome,
                    attempts=attempt + 1,
                    delays_seconds=delays,
                    total_time_seconds=time.monotonic() - start_time,
                    delay_time_seconds=sum(delays),
                )

            attempt += 1
            delay = calculate_backoff_delay(attempt, self._policy)
            delays.append(delay)

            if self._log and self._logger is not None:
                self._logger.warning(
                    "HTTP attempt %d: retrying after %.3f seconds due to error: %s",
                    attempt,
                    delay,
                    describe(outcome),
                    extra={"retry_attempt": attempt, "retry_delay_seconds": delay},
                )

            self._notify(outcome, attempt, delay)

            await token.sleep(delay)

    def on(self, listener: RetryListener) -> Callable[[], None]:
        """
        Add a retry observer.

        Args:
            listener: Observer function

        Returns:
            Function to remove the observer
        """
        self._listeners.append(listener)
        return lambda: self.off(listener)

    def off(self, listener: RetryListener) -> None:
        """Remove a retry observer."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def policy(self) -> RetryPolicy:
        """Get the current policy."""
        return self._policy


async def retry(
    attempt_fn: Callable[[int], Awaitable[T]],
    is_retryable: Callable[[T], bool],
    policy: Optional[RetryPolicy] = None,
    *,
    cancel_token: Optional[CancellationToken] = None,
    logger: Optional[logging.Logger] = None,
    log: bool = True,
) -> RetryResult[T]:
    """
    Execute an attempt function with retry logic (convenience function).

    Args:
        attempt_fn: Async function returning an outcome per attempt
        is_retryable: Predicate deciding whether an outcome is retried
        policy: Retry policy
        cancel_token: Cancellation signal
        logger: Optional logger for retry warnings
        log: Set to False to suppress retry warnings

    Returns:
        Result with retry metadata
    """
    executor: RetryExecutor[T] = RetryExecutor(policy, logger=logger, log=log)
    return await executor.execute(attempt_fn, is_retryable, cancel_token=cancel_token)
