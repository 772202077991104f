"""
Cooperative cancellation for retried operations.

A :class:`CancellationToken` is the caller's cancellation signal. The retry
executor checks it before every attempt and waits on it during backoff
delays; :meth:`CancellationToken.run` races any awaitable (a send, a body
read) against it. Caller-side timeouts are expressed with
:meth:`CancellationToken.cancel_after`.

Cancellation of the surrounding asyncio task is a different thing and is
never converted: ``asyncio.CancelledError`` always propagates.
"""
import asyncio
from typing import Awaitable, Optional, TypeVar


T = TypeVar("T")


class CanceledError(Exception):
    """Raised when the caller's cancellation token has fired."""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(reason or "Operation was canceled")


class CancellationToken:
    """
    Cancellation token for asyncio operations.

    Example:
        token = CancellationToken()
        token.cancel_after(5.0)
        result = await client.send_to_result(url, Todo, cancel_token=token)
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._timer: Optional[asyncio.TimerHandle] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        """Signal that cancellation has been requested."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def cancel_after(self, seconds: float) -> None:
        """
        Schedule cancellation after a delay.

        Must be called from a running event loop.

        Args:
            seconds: Delay before the token fires
        """
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(
            seconds, self.cancel, f"Timed out after {seconds} seconds"
        )

    @property
    def is_cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        """Reason given when the token was cancelled."""
        return self._reason

    def raise_if_cancelled(self) -> None:
        """Raise CanceledError if cancellation has been requested."""
        if self._event.is_set():
            raise CanceledError(self._reason)

    async def sleep(self, seconds: float) -> None:
        """
        Sleep for a duration, waking early if the token fires.

        Args:
            seconds: Duration in seconds

        Raises:
            CanceledError: If the token fires before or during the sleep
        """
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise CanceledError(self._reason)

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await an operation, abandoning it if the token fires first.

        Args:
            awaitable: Operation to run

        Returns:
            The operation's result

        Raises:
            CanceledError: If the token fires before the operation completes
        """
        if self._event.is_set():
            # Close an un-started coroutine so it does not warn on GC
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()
            raise CanceledError(self._reason)

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise CanceledError(self._reason)
