"""
Tests for fetch_result ResultClient and factory.

Test coverage includes:
- Scenario testing: todo GET, failing connection, typed error bodies, cancellation
- Decision/Branch coverage: propagating vs try variants for every family
- Error handling: unexpected exceptions, request build failures
- Logging: retry warnings, log flag, failure reports
"""

import asyncio
import json
import logging

import pytest
from pydantic import BaseModel, Field

import httpx

from fetch_retry import CancellationToken
from fetch_result.client import ResultClient
from fetch_result.errors import RequestBuildError
from fetch_result.factory import create_result_client
from fetch_result.results import Fail, Ok, ProblemDetails, TrySendResult, TrySendStringResult


class TodoItem(BaseModel):
    user_id: int = Field(alias="userId")
    id: int
    title: str
    completed: bool


class ApiError(BaseModel):
    code: str
    message: str


class Opaque:
    pass


TODO_JSON = {"userId": 1, "id": 1, "title": "delectus aut autem", "completed": False}


def todo_response(request):
    return httpx.Response(200, json=TODO_JSON)


def refuse(request):
    raise httpx.ConnectError("connection refused", request=request)


def warnings_from(caplog, name):
    return [r for r in caplog.records if r.name == name and r.levelno == logging.WARNING]


class TestTodoScenario:
    """A GET for a todo item succeeding on the first attempt."""

    @pytest.mark.asyncio
    async def test_send_to_type_returns_todo_after_one_send(self, make_client):
        """Should return the deserialized todo after exactly one send."""
        client, sent = make_client(todo_response)

        todo = await client.send_to_type("/todos/1", TodoItem)

        assert todo == TodoItem(userId=1, id=1, title="delectus aut autem", completed=False)
        assert len(sent) == 1
        assert sent[0].method == "GET"
        assert str(sent[0].url) == "https://api.example.com/todos/1"

    @pytest.mark.asyncio
    async def test_send_to_result_returns_ok(self, make_client):
        """Should return Ok with the todo."""
        client, _ = make_client(todo_response)

        result = await client.send_to_result("/todos/1", TodoItem)

        assert isinstance(result, Ok)
        assert result.value.title == "delectus aut autem"
        assert result.status_code == 200

    @pytest.mark.asyncio
    async def test_send_with_error_returns_success_side(self, make_client):
        """Should return (todo, None)."""
        client, _ = make_client(todo_response)

        success, error = await client.send_with_error("/todos/1", TodoItem, ApiError)

        assert success.id == 1
        assert error is None

    @pytest.mark.asyncio
    async def test_send_and_send_to_string(self, make_client):
        """Should return the raw response and the body text."""
        client, _ = make_client(todo_response)

        response = await client.send("/todos/1")
        body = await client.send_to_string("/todos/1")

        assert response.status_code == 200
        assert response.json() == TODO_JSON
        assert json.loads(body) == TODO_JSON

    @pytest.mark.asyncio
    async def test_try_variants_report_success(self, make_client):
        """Should report success from the try variants."""
        client, _ = make_client(todo_response)

        sent_ok, response = await client.try_send("/todos/1")
        string_ok, body = await client.try_send_to_string("/todos/1")

        assert sent_ok is True and response.status_code == 200
        assert string_ok is True and json.loads(body) == TODO_JSON
        assert (await client.try_send_to_type("/todos/1", TodoItem)).id == 1
        assert (await client.try_send_to_result("/todos/1", TodoItem)).is_ok
        assert (await client.try_send_with_error("/todos/1", TodoItem, ApiError)).success.id == 1


class TestConnectionFailureScenario:
    """A connection failing on every attempt with default retries."""

    @pytest.mark.asyncio
    async def test_three_sends_then_failure_shape(self, make_client):
        """Should send three times and return the failure shape."""
        client, sent = make_client(refuse)

        result = await client.send_to_result("/todos/1", TodoItem)

        assert len(sent) == 3
        assert isinstance(result, Fail)
        assert result.title == "Service unavailable"
        assert result.status_code == 503

    @pytest.mark.asyncio
    async def test_every_family_returns_its_failure_value(self, make_client):
        """Should return each family's absence value."""
        client, _ = make_client(refuse)

        assert await client.send("/todos/1") is None
        assert await client.send_to_string("/todos/1") is None
        assert await client.send_to_type("/todos/1", TodoItem) is None
        assert await client.send_with_error("/todos/1", TodoItem, ApiError) == (None, None)
        assert await client.try_send("/todos/1") == TrySendResult(False, None)
        assert await client.try_send_to_string("/todos/1") == TrySendStringResult(False, None)

    @pytest.mark.asyncio
    async def test_logs_one_warning_per_retry(self, make_client, caller_logger, caplog):
        """Should log two retry warnings and one failure report."""
        client, _ = make_client(refuse, logger=caller_logger)

        with caplog.at_level(logging.DEBUG, logger=caller_logger.name):
            await client.send_to_type("/todos/1", TodoItem)

        warnings = warnings_from(caplog, caller_logger.name)
        assert len(warnings) == 2
        assert "retrying after" in warnings[0].getMessage()
        errors = [r for r in caplog.records if r.name == caller_logger.name and r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "Aborting request to https://api.example.com/todos/1 after 3 attempts, returning null" in errors[0].getMessage()

    @pytest.mark.asyncio
    async def test_log_false_emits_no_warnings(self, make_client, caller_logger, caplog):
        """Should emit zero warnings with log=False."""
        client, sent = make_client(refuse)

        with caplog.at_level(logging.DEBUG, logger=caller_logger.name):
            await client.send_to_type("/todos/1", TodoItem, logger=caller_logger, log=False)

        assert len(sent) == 3
        assert warnings_from(caplog, caller_logger.name) == []

    @pytest.mark.asyncio
    async def test_number_of_retries_override(self, make_client):
        """Should honor a per-call retry count."""
        client, sent = make_client(refuse)

        await client.send_to_type("/todos/1", TodoItem, number_of_retries=0)

        assert len(sent) == 1

    @pytest.mark.asyncio
    async def test_recovers_when_connection_comes_back(self, make_client, sequence):
        """Should return the success of a later attempt."""
        client, sent = make_client(sequence(httpx.ConnectError("refused"), httpx.Response(200, json=TODO_JSON)))

        todo = await client.send_to_type("/todos/1", TodoItem)

        assert todo.id == 1
        assert len(sent) == 2


class TestTypedErrorScenario:
    """A 404 with a parsable error body for the success/error family."""

    @pytest.mark.asyncio
    async def test_returns_error_side_without_retry(self, make_client, sequence):
        """Should return (None, error) after one send."""
        client, sent = make_client(sequence(
            httpx.Response(404, json={"code": "not_found", "message": "No todo 99"})
        ))

        success, error = await client.send_with_error("/todos/99", TodoItem, ApiError)

        assert success is None
        assert error == ApiError(code="not_found", message="No todo 99")
        assert len(sent) == 1

    @pytest.mark.asyncio
    async def test_parsed_error_body_stops_retry_for_retryable_status(self, make_client, sequence):
        """Should not retry a 503 once its error body parsed."""
        client, sent = make_client(sequence(
            httpx.Response(503, json={"code": "maintenance", "message": "back soon"})
        ))

        _, error = await client.send_with_error("/todos/1", TodoItem, ApiError)

        assert error.code == "maintenance"
        assert len(sent) == 1

    @pytest.mark.asyncio
    async def test_unparsed_error_body_is_retried(self, make_client, sequence):
        """Should retry a listed status whose body is not an error value."""
        client, sent = make_client(sequence(httpx.Response(502, text="Bad gateway"), httpx.Response(200, json=TODO_JSON)))

        success, error = await client.send_with_error("/todos/1", TodoItem, ApiError)

        assert success.id == 1
        assert error is None
        assert len(sent) == 2


class TestNonSuccessResponses:
    """Non-2xx handling across families."""

    @pytest.mark.asyncio
    async def test_send_returns_non_success_response_and_logs_error(
        self, make_client, sequence, caller_logger, caplog
    ):
        """Should return the final 500 response after retries and log an error."""
        client, sent = make_client(sequence(httpx.Response(500, text="boom")), logger=caller_logger)

        with caplog.at_level(logging.ERROR, logger=caller_logger.name):
            response = await client.send("/todos/1")

        assert response.status_code == 500
        assert response.text == "boom"
        assert len(sent) == 3
        assert any("non-successful status code (500)" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_try_send_to_string_reports_failure_with_body(self, make_client, sequence):
        """Should return (False, body) for a 404."""
        client, sent = make_client(sequence(httpx.Response(404, text="missing")))

        assert await client.try_send_to_string("/todos/9") == (False, "missing")
        assert len(sent) == 1

    @pytest.mark.asyncio
    async def test_send_to_result_uses_problem_details(self, make_client, sequence):
        """Should build Fail from an RFC 7807 body."""
        problem = {"type": "about:blank", "title": "Todo not found", "status": 404, "detail": "No todo 99"}
        client, _ = make_client(sequence(httpx.Response(404, json=problem)))

        result = await client.send_to_result("/todos/99", TodoItem)

        assert result.is_fail
        assert result.title == "Todo not found"
        assert result.detail == "No todo 99"
        assert result.status_code == 404
        assert isinstance(result.problem, ProblemDetails)

    @pytest.mark.asyncio
    async def test_send_to_result_retries_listed_status_only(self, make_client, sequence):
        """Should retry 503 but not 400."""
        client, sent = make_client(sequence(httpx.Response(503, text="busy")))
        result = await client.send_to_result("/todos/1", TodoItem)
        assert result.status_code == 503
        assert result.title == "Service Unavailable"
        assert len(sent) == 3

        client, sent = make_client(sequence(httpx.Response(400, text="bad")))
        result = await client.send_to_result("/todos/1", TodoItem)
        assert result.status_code == 400
        assert len(sent) == 1

    @pytest.mark.asyncio
    async def test_malformed_success_body_is_retried_then_fails(self, make_client, sequence):
        """Should retry malformed bodies and return Invalid response."""
        client, sent = make_client(sequence(httpx.Response(200, text="<html>")))

        result = await client.send_to_result("/todos/1", TodoItem)

        assert len(sent) == 3
        assert result.title == "Invalid response"
        assert "content: <html>" in result.detail

    @pytest.mark.asyncio
    async def test_malformed_body_with_log_false_hides_content(self, make_client, sequence):
        """Should keep the body out of the failure detail with log=False."""
        client, _ = make_client(sequence(httpx.Response(200, text="secret")))

        result = await client.send_to_result("/todos/1", TodoItem, log=False)

        assert "secret" not in result.detail

    @pytest.mark.asyncio
    async def test_log_false_emits_no_warnings_for_retried_status(
        self, make_client, sequence, caller_logger, caplog
    ):
        """Should retry a 503 silently with log=False and report only the final error."""
        client, sent = make_client(sequence(httpx.Response(503, text="busy")))

        with caplog.at_level(logging.DEBUG, logger=caller_logger.name):
            result = await client.send_to_result("/todos/1", TodoItem, logger=caller_logger, log=False)

        assert len(sent) == 3
        assert result.status_code == 503
        assert warnings_from(caplog, caller_logger.name) == []
        errors = [r for r in caplog.records if r.name == caller_logger.name and r.levelno == logging.ERROR]
        assert len(errors) == 1

    @pytest.mark.asyncio
    async def test_problem_status_does_not_override_response_status(self, make_client, sequence):
        """Should report the response status even when the body claims 200."""
        client, _ = make_client(sequence(httpx.Response(404, json={"status": 200, "title": "Nope"})))

        result = await client.send_to_result("/todos/99", TodoItem)

        assert result.is_fail
        assert result.title == "Nope"
        assert result.status_code == 404


class TestCancellationScenario:
    """Cancellation through the caller's token."""

    @pytest.mark.asyncio
    async def test_cancel_during_delay_returns_canceled_without_more_sends(self, make_client, sequence):
        """Should resolve to Canceled and stop sending."""
        client, sent = make_client(sequence(httpx.Response(503)))
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.05, token.cancel)

        result = await asyncio.wait_for(
            client.send_to_result("/todos/1", TodoItem, cancel_token=token, base_delay_seconds=10),
            timeout=5,
        )

        assert result == Fail.canceled()
        assert result.status_code == 408
        assert len(sent) == 1

    @pytest.mark.asyncio
    async def test_already_cancelled_token_sends_nothing(self, make_client, caller_logger, caplog):
        """Should return the canceled value without sending, and log a warning."""
        client, sent = make_client(todo_response, logger=caller_logger)
        token = CancellationToken()
        token.cancel()

        with caplog.at_level(logging.WARNING, logger=caller_logger.name):
            assert await client.send_to_type("/todos/1", TodoItem, cancel_token=token) is None
            assert await client.try_send("/todos/1", cancel_token=token) == (False, None)
            assert await client.send_with_error("/todos/1", TodoItem, ApiError, cancel_token=token) == (None, None)

        assert sent == []
        assert any("was canceled" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_timeout_through_cancel_after(self, make_client):
        """Should cancel a slow send with a token timeout."""
        async def slow(request):
            await asyncio.sleep(10)
            return httpx.Response(200, json=TODO_JSON)

        client, _ = make_client(slow)
        token = CancellationToken()
        token.cancel_after(0.05)

        result = await asyncio.wait_for(client.send_to_result("/todos/1", TodoItem, cancel_token=token), timeout=5)

        assert result.title == "Request canceled"

    @pytest.mark.asyncio
    async def test_task_cancellation_propagates(self, make_client):
        """Should let asyncio task cancellation through."""
        async def slow(request):
            await asyncio.sleep(10)
            return httpx.Response(200)

        client, _ = make_client(slow)
        task = asyncio.ensure_future(client.try_send_to_result("/todos/1", TodoItem))
        await asyncio.sleep(0.02)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


class TestUnexpectedFailures:
    """Exceptions outside the anticipated taxonomy."""

    @pytest.mark.asyncio
    async def test_propagating_variant_logs_and_reraises(self, make_client, caller_logger, caplog):
        """Should log the exception and re-raise it."""
        def broken(request):
            raise RuntimeError("handler bug")

        client, sent = make_client(broken, logger=caller_logger)

        with caplog.at_level(logging.ERROR, logger=caller_logger.name):
            with pytest.raises(RuntimeError, match="handler bug"):
                await client.send_to_result("/todos/1", TodoItem)

        assert len(sent) == 1
        assert any("Unhandled exception during HTTP request" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_try_variants_return_designated_values(self, make_client):
        """Should swallow unexpected exceptions in try variants."""
        def broken(request):
            raise RuntimeError("handler bug")

        client, _ = make_client(broken)

        assert await client.try_send("/x") == (False, None)
        assert await client.try_send_to_string("/x") == (False, None)
        assert await client.try_send_to_type("/x", TodoItem) is None
        assert await client.try_send_with_error("/x", TodoItem, ApiError) == (None, None)
        assert await client.try_send_to_result("/x", TodoItem) == Fail.unexpected()

    @pytest.mark.asyncio
    async def test_unserializable_payload(self, make_client):
        """Should raise RequestBuildError, or return the try value."""
        client, sent = make_client(todo_response)

        with pytest.raises(RequestBuildError, match=r"payload type \(Opaque\)"):
            await client.send("/todos", method="POST", payload=Opaque())

        result = await client.try_send_to_result("/todos", TodoItem, method="POST", payload=Opaque())

        assert result.title == "Something went wrong"
        assert sent == []

    @pytest.mark.asyncio
    async def test_invalid_retry_override_is_unexpected(self, make_client):
        """Should reject a negative retry count."""
        client, _ = make_client(todo_response)

        with pytest.raises(ValueError):
            await client.send("/todos/1", number_of_retries=-1)


class TestRequestTargets:
    """URI and prebuilt request targets."""

    @pytest.mark.asyncio
    async def test_post_payload_is_resent_on_every_attempt(self, make_client, sequence):
        """Should serialize the payload once and resend it on retry."""
        client, sent = make_client(sequence(httpx.Response(503), httpx.Response(201, json=TODO_JSON)))

        todo = await client.send_to_type(
            "/todos", TodoItem, method="POST",
            payload={"title": "delectus aut autem"}, headers={"x-trace": "t-1"},
        )

        assert todo.id == 1
        assert len(sent) == 2
        for request in sent:
            assert request.method == "POST"
            assert request.content == b'{"title":"delectus aut autem"}'
            assert request.headers["content-type"] == "application/json"
            assert request.headers["x-trace"] == "t-1"

    @pytest.mark.asyncio
    async def test_prebuilt_request_is_duplicated_not_sent(self, make_client, sequence):
        """Should send copies of a prebuilt request."""
        client, sent = make_client(sequence(httpx.Response(500), httpx.Response(200, json=TODO_JSON)))
        request = client.http_client.build_request("PUT", "/todos/1", json={"completed": True})

        todo = await client.send_to_type(request, TodoItem)

        assert todo.completed is False
        assert len(sent) == 2
        assert all(s is not request and s.method == "PUT" for s in sent)
        assert sent[0].content == sent[1].content == request.content

    @pytest.mark.asyncio
    async def test_prebuilt_request_rejects_payload(self, make_client):
        """Should refuse to combine a prebuilt request with a payload."""
        client, _ = make_client(todo_response)
        request = client.http_client.build_request("GET", "/todos/1")

        with pytest.raises(RequestBuildError):
            await client.send(request, payload={"a": 1})

    @pytest.mark.asyncio
    async def test_prebuilt_request_rejects_conflicting_method(self, make_client):
        """Should refuse a method that differs from the prebuilt request's."""
        client, sent = make_client(todo_response)
        request = client.http_client.build_request("GET", "/todos/1")

        with pytest.raises(RequestBuildError, match="conflicts"):
            await client.send(request, method="DELETE")

        assert await client.try_send(request, method="DELETE") == (False, None)
        assert sent == []

    @pytest.mark.asyncio
    async def test_prebuilt_request_accepts_matching_method(self, make_client):
        """Should accept a method equal to the prebuilt request's, in any case."""
        client, sent = make_client(todo_response)
        request = client.http_client.build_request("GET", "/todos/1")

        response = await client.send(request, method="get")

        assert response.status_code == 200
        assert len(sent) == 1


class TestLifecycle:
    """Client construction and closing."""

    @pytest.mark.asyncio
    async def test_does_not_close_borrowed_client(self, mock_http, fast_settings):
        """Should leave a caller-owned transport open."""
        http_client, _ = mock_http(todo_response)

        async with ResultClient(http_client, settings=fast_settings) as client:
            await client.send("/todos/1")

        assert http_client.is_closed is False
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_uses_settings_policy(self, mock_http, fast_settings):
        """Should build the default policy from settings."""
        http_client, _ = mock_http(todo_response)

        client = ResultClient(http_client, settings=fast_settings)

        assert client.policy.max_retries == 2
        assert client.policy.base_delay_seconds == 0.01

    @pytest.mark.asyncio
    async def test_factory_builds_owned_client(self, fast_settings):
        """Should create a client that closes its own transport."""
        async with create_result_client(
            base_url="https://api.example.com",
            transport=httpx.MockTransport(todo_response),
            settings=fast_settings,
        ) as client:
            todo = await client.send_to_type("/todos/1", TodoItem)
            http_client = client.http_client

        assert todo.id == 1
        assert http_client.is_closed is True

    @pytest.mark.asyncio
    async def test_on_retry_observer(self, make_client):
        """Should notify the client's retry observer."""
        seen = []
        client, _ = make_client(refuse, on_retry=lambda outcome, attempt, delay: seen.append(attempt))

        await client.send_to_type("/todos/1", TodoItem)

        assert seen == [1, 2]
