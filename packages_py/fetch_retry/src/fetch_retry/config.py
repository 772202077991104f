"""
Configuration utilities for fetch_retry
"""
import random
from dataclasses import replace
from typing import Optional

from .types import RetryPolicy


# Default retry policy
DEFAULT_RETRY_POLICY = RetryPolicy(
    max_retries=2,
    base_delay_seconds=2.0,
    jitter_upper_bound_ms=1000,
    retry_on_status=(408, 429, 500, 502, 503, 504),
    retry_on_errors=("ConnectionError", "TimeoutError", "OSError"),
)


def validate_policy(policy: RetryPolicy) -> RetryPolicy:
    """
    Validate a retry policy.

    Args:
        policy: Policy to check

    Returns:
        The same policy

    Raises:
        ValueError: If a field is out of range
    """
    if policy.max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {policy.max_retries}")
    if policy.base_delay_seconds <= 0:
        raise ValueError(
            f"base_delay_seconds must be > 0, got {policy.base_delay_seconds}"
        )
    if policy.jitter_upper_bound_ms < 0:
        raise ValueError(
            f"jitter_upper_bound_ms must be >= 0, got {policy.jitter_upper_bound_ms}"
        )
    return policy


def calculate_backoff_delay(attempt: int, policy: RetryPolicy) -> float:
    """
    Calculate the delay before a retry attempt.

    delay = base * 2^(attempt - 1) + random[0, jitter_upper_bound_ms) / 1000

    Args:
        attempt: The retry attempt number (1 for the first retry)
        policy: Retry policy

    Returns:
        Delay in seconds
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")

    exponential_delay = policy.base_delay_seconds * (2 ** (attempt - 1))
    jitter_ms = random.random() * policy.jitter_upper_bound_ms

    return exponential_delay + jitter_ms / 1000.0


def is_retryable_error(error: BaseException, policy: RetryPolicy) -> bool:
    """
    Check if an error counts as a retryable transport failure.

    Args:
        error: The error to check
        policy: Retry policy

    Returns:
        Whether the error is retryable
    """
    if not policy.retry_on_transport_failure:
        return False

    names = {klass.__name__ for klass in type(error).__mro__}
    if names.intersection(policy.retry_on_errors):
        return True

    # httpx wraps socket errors in its own TransportError hierarchy
    if "TransportError" in names:
        return True

    if error.__cause__ is not None:
        return is_retryable_error(error.__cause__, policy)

    return False


def is_retryable_status(status: int, policy: RetryPolicy) -> bool:
    """
    Check if an HTTP status code should trigger a retry.

    Args:
        status: The HTTP status code
        policy: Retry policy

    Returns:
        Whether the status is retryable
    """
    return status in policy.retry_on_status


def merge_policy(policy: Optional[RetryPolicy] = None) -> RetryPolicy:
    """
    Merge a policy with defaults.

    Args:
        policy: User-provided policy

    Returns:
        Complete, validated policy
    """
    if policy is None:
        return DEFAULT_RETRY_POLICY
    return validate_policy(policy)


def with_overrides(
    policy: RetryPolicy,
    *,
    max_retries: Optional[int] = None,
    base_delay_seconds: Optional[float] = None,
) -> RetryPolicy:
    """
    Return a copy of policy with per-call overrides applied.

    Args:
        policy: Base policy
        max_retries: Override for the number of retries
        base_delay_seconds: Override for the base delay

    Returns:
        Validated policy copy
    """
    changes = {}
    if max_retries is not None:
        changes["max_retries"] = max_retries
    if base_delay_seconds is not None:
        changes["base_delay_seconds"] = base_delay_seconds
    if not changes:
        return policy
    return validate_policy(replace(policy, **changes))
