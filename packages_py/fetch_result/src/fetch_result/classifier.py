"""
Response classification.

Turns one raw response into one attempt outcome. The body is always
materialized here and the response closed before returning, so retried
attempts never leak connections.
"""
import logging
from typing import Any, Optional

import httpx

from fetch_retry import CancellationToken, RetryPolicy, is_retryable_status

from .codec import Serializer
from .errors import CodecError
from .outcomes import AttemptOutcome, DeserializationFailure, NonSuccessStatus, Success

module_logger = logging.getLogger("fetch_result.classifier")


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


def _type_name(target_type: Any) -> str:
    return getattr(target_type, "__name__", None) or repr(target_type)


class ResponseClassifier:
    """
    Classify responses into attempt outcomes.

    Args:
        policy: Retry policy deciding which failures are retryable
        codec: Codec used for success and error bodies
        success_type: Type to deserialize 2xx bodies into (None: no deserialization)
        error_type: Type to deserialize non-2xx bodies into (None: keep raw text)
        terminal_on_error_body: A non-2xx body that deserializes into
            error_type ends the retry loop even if the status is retryable
        logger: Optional caller logger
        log: When False, raw bodies are left out of error messages
    """

    def __init__(
        self,
        policy: RetryPolicy,
        codec: Serializer,
        *,
        success_type: Any = None,
        error_type: Any = None,
        terminal_on_error_body: bool = False,
        logger: Optional[logging.Logger] = None,
        log: bool = True,
    ):
        self._policy = policy
        self._codec = codec
        self._success_type = success_type
        self._error_type = error_type
        self._terminal_on_error_body = terminal_on_error_body
        self._logger = logger
        self._log = log

    async def classify(
        self,
        response: httpx.Response,
        cancel_token: CancellationToken,
    ) -> AttemptOutcome:
        """
        Read the body and classify the response.

        Raises:
            CanceledError: If the token fires while the body is being read
        """
        try:
            try:
                await cancel_token.run(response.aread())
                raw_body: Optional[str] = response.text
                read_error: Optional[Exception] = None
            except (httpx.HTTPError, OSError, UnicodeDecodeError) as error:
                raw_body = None
                read_error = error

            if not is_success_status(response.status_code):
                return self._non_success(response, raw_body)

            if read_error is not None:
                if self._logger is not None:
                    self._logger.error(
                        "Exception reading content from %s", response.request.url,
                        exc_info=read_error,
                    )
                return DeserializationFailure(
                    cause=read_error,
                    status_code=response.status_code,
                    response=response,
                    retryable=self._policy.retry_on_deserialization_failure,
                )

            return self._success(response, raw_body)
        finally:
            await response.aclose()

    def _non_success(
        self,
        response: httpx.Response,
        raw_body: Optional[str],
    ) -> NonSuccessStatus:
        status_code = response.status_code
        if self._log and self._logger is not None:
            self._logger.warning(
                "HTTP request (%s) returned a non-successful status code (%d)",
                response.request.url,
                status_code,
                extra={"status_code": status_code},
            )
        else:
            module_logger.debug(
                f"{response.request.url} returned non-successful status {status_code}"
            )

        error_value = None
        if self._error_type is not None and raw_body:
            try:
                error_value = self._codec.deserialize(raw_body, self._error_type)
            except CodecError as error:
                module_logger.debug(
                    f"Error body for status {status_code} is not a "
                    f"{_type_name(self._error_type)}: {error}"
                )

        retryable = is_retryable_status(status_code, self._policy)
        if self._terminal_on_error_body and error_value is not None:
            retryable = False

        return NonSuccessStatus(
            status_code=status_code,
            raw_body=raw_body,
            error_value=error_value,
            response=response,
            retryable=retryable,
        )

    def _success(self, response: httpx.Response, raw_body: Optional[str]) -> AttemptOutcome:
        if self._success_type is None:
            return Success(status_code=response.status_code, raw_body=raw_body, response=response)

        type_name = _type_name(self._success_type)
        suffix = f", content: {raw_body}" if self._log else ""
        try:
            value = self._codec.deserialize(raw_body or "", self._success_type)
        except CodecError as error:
            if self._logger is not None:
                self._logger.error(
                    "Deserialization exception for type (%s)", type_name, exc_info=error
                )
            cause: Exception = CodecError(
                f"Deserialization of type ({type_name}) failed{suffix}", content=raw_body
            )
            cause.__cause__ = error
        else:
            if value is not None:
                return Success(
                    status_code=response.status_code,
                    raw_body=raw_body,
                    value=value,
                    response=response,
                )
            cause = CodecError(
                f"Deserialization of type ({type_name}) resulted in null{suffix}",
                content=raw_body,
            )
            if self._logger is not None:
                self._logger.error("%s", cause)

        return DeserializationFailure(
            cause=cause,
            raw_body=raw_body,
            status_code=response.status_code,
            response=response,
            retryable=self._policy.retry_on_deserialization_failure,
        )
