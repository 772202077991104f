"""
Failure reporting at the public boundary.

Every helper accepts an optional caller logger; without one it is a no-op.
"""
import logging
from typing import Optional

import httpx

from fetch_retry import RetryResult

from .outcomes import AttemptOutcome, OutcomeKind


def report_exhausted(
    logger: Optional[logging.Logger],
    result: RetryResult[AttemptOutcome],
    request: httpx.Request,
    shape: str,
) -> None:
    """Log a call whose final outcome is a failure."""
    if logger is None or result.outcome.kind == OutcomeKind.SUCCESS:
        return

    outcome = result.outcome
    if result.retries > 0:
        message = "Aborting request to %s after %d attempts, returning %s: %s"
    else:
        message = "Request to %s failed after %d attempt, returning %s: %s"

    logger.error(
        message,
        request.url,
        result.attempts,
        shape,
        outcome.describe(),
        extra={"attempts": result.attempts, "outcome": outcome.kind.value},
    )


def report_non_success(
    logger: Optional[logging.Logger],
    request: httpx.Request,
    status_code: int,
) -> None:
    """Log a non-2xx final response that is still handed to the caller."""
    if logger is None:
        return
    logger.error(
        "HTTP request (%s) returned a non-successful status code (%d)",
        request.url,
        status_code,
        extra={"status_code": status_code},
    )


def report_canceled(
    logger: Optional[logging.Logger],
    request: Optional[httpx.Request],
    error: BaseException,
) -> None:
    """Log a call stopped by the caller's cancellation token."""
    if logger is None:
        return
    logger.warning(
        "HTTP request to %s was canceled.",
        request.url if request is not None else "<unbuilt request>",
        exc_info=error,
    )


def report_unexpected(
    logger: Optional[logging.Logger],
    request: Optional[httpx.Request],
    error: BaseException,
) -> None:
    """Log an exception outside the anticipated failure classes."""
    if logger is None:
        return
    logger.error(
        "Unhandled exception during HTTP request to %s.",
        request.url if request is not None else "<unbuilt request>",
        exc_info=error,
    )
