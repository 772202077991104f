"""
Resilient request execution over an httpx.AsyncClient.
"""
import logging
from typing import Any, Mapping, Optional, Type, TypeVar

import httpx

from fetch_retry import (
    CanceledError,
    CancellationToken,
    RetryListener,
    RetryPolicy,
    with_overrides,
)

from .classifier import ResponseClassifier
from .codec import Serializer, default_codec
from .duplicator import build_request
from .errors import RequestBuildError
from .outcomes import NonSuccessStatus
from .pipeline import ExecutionPipeline
from .projector import (
    RAW,
    RESULT,
    STRING,
    SUCCESS_ERROR,
    TRY_RAW,
    TRY_STRING,
    TYPED,
    Projection,
)
from .reporter import (
    report_canceled,
    report_exhausted,
    report_non_success,
    report_unexpected,
)
from .results import (
    OperationResult,
    ProblemDetails,
    SendWithErrorResult,
    TrySendResult,
    TrySendStringResult,
)
from .settings import FetchResultSettings, get_settings
from .types import HttpMethod, Target

T = TypeVar("T")

logger = logging.getLogger("fetch_result.client")


class ResultClient:
    """
    Sends requests with retry and projects responses into result shapes.

    Every shape has a propagating method and a ``try_`` method. Transport
    failures, non-2xx statuses, unusable bodies and cancellation through the
    token always map to the shape's failure value. Anything else is logged
    and re-raised by the propagating method, and swallowed by the try method.

    Example:
        async with httpx.AsyncClient() as http:
            client = ResultClient(http)
            result = await client.send_to_result("https://api.example.com/todos/1", Todo)
            if result.is_ok:
                print(result.value.title)
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        codec: Optional[Serializer] = None,
        logger: Optional[logging.Logger] = None,
        policy: Optional[RetryPolicy] = None,
        settings: Optional[FetchResultSettings] = None,
        on_retry: Optional[RetryListener] = None,
        owns_client: bool = False,
    ):
        """
        Create a new ResultClient.

        Args:
            http_client: Transport; its lifecycle is managed by the caller
                unless owns_client is True
            codec: Body codec. Default: JsonCodec
            logger: Default caller logger (per-call logger overrides it)
            policy: Retry policy. Default: built from settings
            settings: Settings. Default: get_settings()
            on_retry: Observer called before each retry
            owns_client: Close http_client in aclose()
        """
        self._client = http_client
        self._codec = codec or default_codec
        self._logger = logger
        self._settings = settings or get_settings()
        self._policy = policy or self._settings.to_retry_policy()
        self._on_retry = on_retry
        self._owns_client = owns_client

    def _build(
        self,
        target: Target,
        method: Optional[HttpMethod],
        payload: Optional[Any],
        headers: Optional[Mapping[str, str]],
    ) -> httpx.Request:
        if isinstance(target, httpx.Request):
            if payload is not None or headers:
                raise RequestBuildError(
                    "payload and headers cannot be combined with a prebuilt request"
                )
            if method is not None and method.upper() != target.method:
                raise RequestBuildError(
                    f"method {method} conflicts with prebuilt {target.method} request"
                )
            return target
        return build_request(
            self._client,
            method or "GET",
            target,
            payload=payload,
            headers=headers,
            codec=self._codec,
        )

    async def _execute(
        self,
        target: Target,
        projection: Projection,
        *,
        method: Optional[HttpMethod] = None,
        payload: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
        cancel_token: Optional[CancellationToken] = None,
        logger: Optional[logging.Logger] = None,
        number_of_retries: Optional[int] = None,
        base_delay_seconds: Optional[float] = None,
        log: Optional[bool] = None,
        success_type: Any = None,
        error_type: Any = None,
        terminal_on_error_body: bool = False,
    ) -> Any:
        call_logger = logger if logger is not None else self._logger
        call_log = self._settings.log_retries if log is None else log
        token = cancel_token or CancellationToken()
        request: Optional[httpx.Request] = None

        try:
            policy = with_overrides(
                self._policy,
                max_retries=number_of_retries,
                base_delay_seconds=base_delay_seconds,
            )
            request = self._build(target, method, payload, headers)
            classifier = ResponseClassifier(
                policy,
                self._codec,
                success_type=success_type,
                error_type=error_type,
                terminal_on_error_body=terminal_on_error_body,
                logger=call_logger,
                log=call_log,
            )
            pipeline = ExecutionPipeline(
                self._client,
                policy,
                classifier,
                logger=call_logger,
                log=call_log,
                on_retry=self._on_retry,
            )
            result = await pipeline.run(request, token)
        except CanceledError as error:
            report_canceled(call_logger, request, error)
            return projection.on_canceled()
        except Exception as error:
            report_unexpected(call_logger, request, error)
            raise

        outcome = result.outcome
        if projection.returns_non_success and isinstance(outcome, NonSuccessStatus):
            report_non_success(call_logger, request, outcome.status_code)
        else:
            report_exhausted(call_logger, result, request, projection.name)

        return projection.project(outcome)

    async def _try_execute(self, target: Target, projection: Projection, **kwargs: Any) -> Any:
        try:
            return await self._execute(target, projection, **kwargs)
        except Exception as error:
            logger.debug(f"ResultClient: swallowed {type(error).__name__} for try variant")
            return projection.on_unexpected()

    # Raw response

    async def send(self, target: Target, **kwargs: Any) -> Optional[httpx.Response]:
        """
        Send a request and return the response, whatever its status.

        Non-2xx responses are logged as errors. Returns None when no response
        could be obtained (transport failure after retries, cancellation).
        The body is already read; the caller owns the response.

        Keyword Args:
            method: HTTP method. Default: "GET", or the prebuilt request's method
            payload: Object serialized as the request body
            headers: Extra request headers
            cancel_token: Cancellation signal (also the way to set a timeout)
            logger: Caller logger for this call
            number_of_retries: Retries after the first attempt
            base_delay_seconds: Base backoff delay
            log: False suppresses retry warnings and body text in errors
        """
        return await self._execute(target, RAW, **kwargs)

    async def try_send(self, target: Target, **kwargs: Any) -> TrySendResult:
        """Like send(), never raises. Returns (successful, response)."""
        return await self._try_execute(target, TRY_RAW, **kwargs)

    # String body

    async def send_to_string(self, target: Target, **kwargs: Any) -> Optional[str]:
        """Send a request and return the body text, whatever the status."""
        return await self._execute(target, STRING, **kwargs)

    async def try_send_to_string(self, target: Target, **kwargs: Any) -> TrySendStringResult:
        """Like send_to_string(), never raises. Returns (successful, body)."""
        return await self._try_execute(target, TRY_STRING, **kwargs)

    # Typed object

    async def send_to_type(
        self,
        target: Target,
        response_type: Type[T],
        **kwargs: Any,
    ) -> Optional[T]:
        """
        Send a request and deserialize a 2xx body into response_type.

        Unreadable bodies and bodies deserializing to None are retried like
        transport failures. Returns None on any failure.
        """
        return await self._execute(target, TYPED, success_type=response_type, **kwargs)

    async def try_send_to_type(
        self,
        target: Target,
        response_type: Type[T],
        **kwargs: Any,
    ) -> Optional[T]:
        """Like send_to_type(), never raises."""
        return await self._try_execute(target, TYPED, success_type=response_type, **kwargs)

    # Success/error pair

    async def send_with_error(
        self,
        target: Target,
        success_type: Any,
        error_type: Any,
        **kwargs: Any,
    ) -> SendWithErrorResult:
        """
        Send a request and deserialize the body into success_type on 2xx or
        error_type otherwise.

        A non-2xx response whose body parses as error_type is final and is
        never retried.
        """
        return await self._execute(
            target,
            SUCCESS_ERROR,
            success_type=success_type,
            error_type=error_type,
            terminal_on_error_body=True,
            **kwargs,
        )

    async def try_send_with_error(
        self,
        target: Target,
        success_type: Any,
        error_type: Any,
        **kwargs: Any,
    ) -> SendWithErrorResult:
        """Like send_with_error(), never raises."""
        return await self._try_execute(
            target,
            SUCCESS_ERROR,
            success_type=success_type,
            error_type=error_type,
            terminal_on_error_body=True,
            **kwargs,
        )

    # Unified result

    async def send_to_result(
        self,
        target: Target,
        response_type: Type[T],
        **kwargs: Any,
    ) -> OperationResult[T]:
        """
        Send a request and return Ok(value) or Fail(title, detail, status_code).

        Non-2xx bodies are read as RFC 7807 problem details when possible.
        Only statuses in the policy's retry_on_status are retried.
        """
        return await self._execute(
            target,
            RESULT,
            success_type=response_type,
            error_type=ProblemDetails,
            **kwargs,
        )

    async def try_send_to_result(
        self,
        target: Target,
        response_type: Type[T],
        **kwargs: Any,
    ) -> OperationResult[T]:
        """Like send_to_result(), never raises."""
        return await self._try_execute(
            target,
            RESULT,
            success_type=response_type,
            error_type=ProblemDetails,
            **kwargs,
        )

    @property
    def policy(self) -> RetryPolicy:
        """Get the default retry policy."""
        return self._policy

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get the underlying transport."""
        return self._client

    async def aclose(self) -> None:
        """Close the transport if this client owns it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ResultClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.aclose()
