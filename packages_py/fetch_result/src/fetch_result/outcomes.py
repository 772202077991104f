"""
Attempt outcomes.

Every send attempt produces exactly one of the variants below. The retry
loop only looks at ``retryable``; the projector switches on ``kind``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

import httpx


class OutcomeKind(str, Enum):
    """Attempt outcome tag"""
    TRANSPORT_FAILURE = "transport_failure"
    NON_SUCCESS_STATUS = "non_success_status"
    DESERIALIZATION_FAILURE = "deserialization_failure"
    SUCCESS = "success"


@dataclass(frozen=True)
class TransportFailure:
    """No response was obtained (network error, timeout, unclonable body)."""

    cause: BaseException
    retryable: bool = True

    kind = OutcomeKind.TRANSPORT_FAILURE

    def describe(self) -> str:
        return f"{type(self.cause).__name__}: {self.cause}"


@dataclass(frozen=True)
class NonSuccessStatus:
    """The server answered with a status outside 2xx."""

    status_code: int
    raw_body: Optional[str] = None
    error_value: Any = None
    response: Optional[httpx.Response] = None
    retryable: bool = False

    kind = OutcomeKind.NON_SUCCESS_STATUS

    def describe(self) -> str:
        return f"HTTP request failed with status code: {self.status_code}"


@dataclass(frozen=True)
class DeserializationFailure:
    """A success response whose body could not be read or deserialized."""

    cause: BaseException
    raw_body: Optional[str] = None
    status_code: Optional[int] = None
    response: Optional[httpx.Response] = None
    retryable: bool = True

    kind = OutcomeKind.DESERIALIZATION_FAILURE

    def describe(self) -> str:
        return str(self.cause)


@dataclass(frozen=True)
class Success:
    """A success response, deserialized when a type was requested."""

    status_code: int
    raw_body: Optional[str] = None
    value: Any = None
    response: Optional[httpx.Response] = None

    kind = OutcomeKind.SUCCESS
    retryable = False

    def describe(self) -> str:
        return f"HTTP {self.status_code}"


AttemptOutcome = Union[TransportFailure, NonSuccessStatus, DeserializationFailure, Success]


def is_retryable(outcome: AttemptOutcome) -> bool:
    """Retry predicate handed to the executor."""
    return outcome.retryable


def describe(outcome: AttemptOutcome) -> str:
    """Render an outcome for log lines."""
    return outcome.describe()
