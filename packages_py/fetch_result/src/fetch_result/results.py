"""
Result shapes returned by ResultClient.

- OperationResult: exactly one of Ok(value) or Fail(title, detail, status_code)
- SendWithErrorResult: (success, error) pair, at most one side populated
- TrySendResult / TrySendStringResult: (successful, payload) pairs
"""
from dataclasses import dataclass
from typing import Any, Generic, NamedTuple, Optional, TypeVar, Union

import httpx
from pydantic import BaseModel, ConfigDict

from .errors import ResultUnwrapError


T = TypeVar("T")


# Canonical user-facing messages
REQUEST_CANCELED_TITLE = "Request canceled"
REQUEST_CANCELED_DETAIL = "The request was canceled before it could complete."
SOMETHING_WENT_WRONG_TITLE = "Something went wrong"
SOMETHING_WENT_WRONG_DETAIL = "An unexpected error occurred while processing the request."
SERVICE_UNAVAILABLE_TITLE = "Service unavailable"
INVALID_RESPONSE_TITLE = "Invalid response"


class ProblemDetails(BaseModel):
    """RFC 7807 problem details body."""

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    title: Optional[str] = None
    status: Optional[int] = None
    detail: Optional[str] = None
    instance: Optional[str] = None


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful operation result."""

    value: T
    status_code: int = 200

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_fail(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Fail:
    """Failed operation result."""

    title: str
    detail: Optional[str] = None
    status_code: int = 500
    problem: Optional[ProblemDetails] = None

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_fail(self) -> bool:
        return True

    def unwrap(self) -> Any:
        raise ResultUnwrapError(
            f"Cannot unwrap failed result ({self.status_code} {self.title}): {self.detail}"
        )

    @classmethod
    def canceled(cls) -> "Fail":
        return cls(REQUEST_CANCELED_TITLE, REQUEST_CANCELED_DETAIL, 408)

    @classmethod
    def unexpected(cls) -> "Fail":
        return cls(SOMETHING_WENT_WRONG_TITLE, SOMETHING_WENT_WRONG_DETAIL, 500)

    @classmethod
    def from_problem(
        cls,
        problem: ProblemDetails,
        status_code: int,
        fallback_title: str = SOMETHING_WENT_WRONG_TITLE,
    ) -> "Fail":
        return cls(
            title=problem.title or fallback_title,
            detail=problem.detail,
            status_code=status_code,
            problem=problem,
        )


OperationResult = Union[Ok[T], Fail]


class SendWithErrorResult(NamedTuple):
    """Typed success and error payloads; at most one is populated."""

    success: Any
    error: Any


class TrySendResult(NamedTuple):
    """Whether the status was 2xx, and the response if one was obtained."""

    successful: bool
    response: Optional[httpx.Response]


class TrySendStringResult(NamedTuple):
    """Whether the status was 2xx, and the body if one was obtained."""

    successful: bool
    body: Optional[str]
