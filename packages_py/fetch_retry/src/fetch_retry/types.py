"""
Type definitions for fetch_retry
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar


T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry policy (immutable; derive variants with dataclasses.replace)"""

    max_retries: int = 2
    """Additional attempts after the first one. Default: 2"""

    base_delay_seconds: float = 2.0
    """Base delay for exponential backoff (seconds). Default: 2.0"""

    jitter_upper_bound_ms: int = 1000
    """Exclusive upper bound of the random jitter added to each delay (milliseconds). Default: 1000"""

    retry_on_status: tuple[int, ...] = (408, 429, 500, 502, 503, 504)
    """Non-success HTTP status codes that should trigger retry"""

    retry_on_errors: tuple[str, ...] = ("ConnectionError", "TimeoutError", "OSError")
    """Error type names (besides httpx transport errors) that count as transport failures"""

    retry_on_transport_failure: bool = True
    """Whether transport failures are retried. Default: True"""

    retry_on_deserialization_failure: bool = True
    """Whether unreadable or malformed success bodies are retried. Default: True"""


@dataclass
class RetryResult(Generic[T]):
    """Result of a retried operation"""

    outcome: T
    """Outcome of the last attempt"""

    attempts: int
    """Number of attempts made (1 if the first attempt was terminal)"""

    delays_seconds: list[float] = field(default_factory=list)
    """Backoff delay applied before each retry, in order"""

    total_time_seconds: float = 0.0
    """Total time spent including retries (seconds)"""

    delay_time_seconds: float = 0.0
    """Time spent in backoff delays (seconds)"""

    @property
    def retries(self) -> int:
        """Number of retries performed (0 if the first attempt was terminal)"""
        return self.attempts - 1


# Observer called before each retry: (outcome, attempt number, delay seconds)
RetryListener = Callable[[Any, int, float], None]
