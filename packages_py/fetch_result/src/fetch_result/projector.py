"""
Result projection.

Each Projection maps the final attempt outcome of a call to one result
shape, and names the value that shape uses for a canceled call and for an
unexpected failure.
"""
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from .outcomes import (
    AttemptOutcome,
    DeserializationFailure,
    NonSuccessStatus,
    Success,
    TransportFailure,
)
from .results import (
    INVALID_RESPONSE_TITLE,
    SERVICE_UNAVAILABLE_TITLE,
    Fail,
    Ok,
    OperationResult,
    ProblemDetails,
    SendWithErrorResult,
    TrySendResult,
    TrySendStringResult,
)


def to_response(outcome: AttemptOutcome) -> Optional[httpx.Response]:
    """Raw response, whatever its status; None when none was obtained."""
    if isinstance(outcome, (Success, NonSuccessStatus)):
        return outcome.response
    return None


def to_string(outcome: AttemptOutcome) -> Optional[str]:
    """Body text, whatever the status; None when none was obtained."""
    if isinstance(outcome, (Success, NonSuccessStatus)):
        return outcome.raw_body
    return None


def to_type(outcome: AttemptOutcome) -> Any:
    """Deserialized value on success, None otherwise."""
    if isinstance(outcome, Success):
        return outcome.value
    return None


def to_success_error(outcome: AttemptOutcome) -> SendWithErrorResult:
    """(value, None) on success, (None, error value) on non-2xx."""
    if isinstance(outcome, Success):
        return SendWithErrorResult(outcome.value, None)
    if isinstance(outcome, NonSuccessStatus):
        return SendWithErrorResult(None, outcome.error_value)
    return SendWithErrorResult(None, None)


def to_result(outcome: AttemptOutcome) -> OperationResult:
    """Ok(value) on success, Fail describing the classified failure otherwise."""
    if isinstance(outcome, Success):
        return Ok(outcome.value, outcome.status_code)

    if isinstance(outcome, NonSuccessStatus):
        reason = httpx.codes.get_reason_phrase(outcome.status_code) or "HTTP error"
        if isinstance(outcome.error_value, ProblemDetails):
            return Fail.from_problem(outcome.error_value, outcome.status_code, reason)
        return Fail(
            title=reason,
            detail=outcome.describe(),
            status_code=outcome.status_code,
        )

    if isinstance(outcome, TransportFailure):
        return Fail(SERVICE_UNAVAILABLE_TITLE, outcome.describe(), 503)

    if isinstance(outcome, DeserializationFailure):
        return Fail(INVALID_RESPONSE_TITLE, outcome.describe(), 500)

    raise TypeError(f"Unknown attempt outcome: {outcome!r}")


def to_try_response(outcome: AttemptOutcome) -> TrySendResult:
    return TrySendResult(isinstance(outcome, Success), to_response(outcome))


def to_try_string(outcome: AttemptOutcome) -> TrySendStringResult:
    return TrySendStringResult(isinstance(outcome, Success), to_string(outcome))


@dataclass(frozen=True)
class Projection:
    """A result shape: how to project an outcome, and its fallback values."""

    name: str
    project: Callable[[AttemptOutcome], Any]
    on_canceled: Callable[[], Any]
    on_unexpected: Callable[[], Any]
    # Raw and string shapes hand non-2xx responses to the caller as data
    returns_non_success: bool = False


def _none() -> None:
    return None


RAW = Projection("response", to_response, _none, _none, returns_non_success=True)
TRY_RAW = Projection(
    "response",
    to_try_response,
    lambda: TrySendResult(False, None),
    lambda: TrySendResult(False, None),
    returns_non_success=True,
)
STRING = Projection("string", to_string, _none, _none, returns_non_success=True)
TRY_STRING = Projection(
    "string",
    to_try_string,
    lambda: TrySendStringResult(False, None),
    lambda: TrySendStringResult(False, None),
    returns_non_success=True,
)
TYPED = Projection("null", to_type, _none, _none)
SUCCESS_ERROR = Projection(
    "(null, null)",
    to_success_error,
    lambda: SendWithErrorResult(None, None),
    lambda: SendWithErrorResult(None, None),
)
RESULT = Projection("failed result", to_result, Fail.canceled, Fail.unexpected)
