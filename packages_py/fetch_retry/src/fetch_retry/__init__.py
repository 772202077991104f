"""
Bounded retry with exponential backoff, jitter and cooperative cancellation.
"""
from .types import (
    RetryPolicy,
    RetryResult,
    RetryListener,
)
from .config import (
    DEFAULT_RETRY_POLICY,
    calculate_backoff_delay,
    is_retryable_error,
    is_retryable_status,
    merge_policy,
    validate_policy,
    with_overrides,
)
from .cancellation import CanceledError, CancellationToken
from .executor import RetryExecutor, retry


__all__ = [
    # Types
    "RetryPolicy",
    "RetryResult",
    "RetryListener",
    # Config
    "DEFAULT_RETRY_POLICY",
    "calculate_backoff_delay",
    "is_retryable_error",
    "is_retryable_status",
    "merge_policy",
    "validate_policy",
    "with_overrides",
    # Cancellation
    "CanceledError",
    "CancellationToken",
    # Executor
    "RetryExecutor",
    "retry",
]


__version__ = "1.0.0"
