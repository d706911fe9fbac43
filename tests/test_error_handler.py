"""Tests for error classification, retry policy and normalization."""

import logging
from unittest.mock import patch

import httpx
import pytest

from exa_websets.app.client.error_handler import ApiErrorHandler, Fatal, Retryable
from exa_websets.app.exceptions import ApiErrorType, CircuitOpenError, WebsetsApiError

REQUEST = httpx.Request("GET", "https://api.test/websets/v0/websets/ws_1")


def _status_error(status: int, json=None, text: str = "") -> httpx.HTTPStatusError:
    if json is not None:
        response = httpx.Response(status, json=json, request=REQUEST)
    else:
        response = httpx.Response(status, text=text, request=REQUEST)
    return httpx.HTTPStatusError(f"HTTP {status}", request=REQUEST, response=response)


class TestClassify:
    """Test mapping raw failures to error kinds."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (400, ApiErrorType.VALIDATION),
            (401, ApiErrorType.AUTHENTICATION),
            (403, ApiErrorType.AUTHORIZATION),
            (404, ApiErrorType.NOT_FOUND),
            (422, ApiErrorType.VALIDATION),
            (429, ApiErrorType.RATE_LIMIT),
            (500, ApiErrorType.SERVER_ERROR),
            (503, ApiErrorType.SERVER_ERROR),
        ],
    )
    def test_http_status(self, status, expected):
        assert ApiErrorHandler.classify(_status_error(status)) == expected

    def test_connection_errors(self):
        assert ApiErrorHandler.classify(httpx.ConnectError("refused", request=REQUEST)) == ApiErrorType.NETWORK_ERROR
        assert ApiErrorHandler.classify(ConnectionResetError()) == ApiErrorType.NETWORK_ERROR

    def test_timeouts(self):
        assert ApiErrorHandler.classify(httpx.ReadTimeout("slow", request=REQUEST)) == ApiErrorType.TIMEOUT_ERROR
        assert ApiErrorHandler.classify(TimeoutError()) == ApiErrorType.TIMEOUT_ERROR

    def test_timeout_in_message(self):
        assert ApiErrorHandler.classify(RuntimeError("Request Timeout after 30s")) == ApiErrorType.TIMEOUT_ERROR

    def test_status_beats_timeout_in_url(self):
        """Status errors embed the URL, which must not read as a timeout."""
        request = httpx.Request("GET", "https://api.test/websets/v0/websets/timeout-study")
        response = httpx.Response(404, request=request)
        error = httpx.HTTPStatusError(
            f"Client error '404 Not Found' for url '{request.url}'", request=request, response=response
        )

        assert ApiErrorHandler.classify(error) == ApiErrorType.NOT_FOUND

    def test_gateway_timeout_is_server_error(self):
        error = _status_error(504)
        error.args = ("Gateway Timeout",)
        assert ApiErrorHandler.classify(error) == ApiErrorType.SERVER_ERROR

    def test_circuit_breaker(self):
        assert ApiErrorHandler.classify(CircuitOpenError()) == ApiErrorType.CIRCUIT_BREAKER_OPEN
        assert ApiErrorHandler.classify("Circuit breaker is open") == ApiErrorType.CIRCUIT_BREAKER_OPEN

    def test_unknown_defaults_to_network(self):
        assert ApiErrorHandler.classify(RuntimeError("weird")) == ApiErrorType.NETWORK_ERROR
        assert ApiErrorHandler.classify(None) == ApiErrorType.NETWORK_ERROR

    def test_classified_error_keeps_kind(self):
        error = WebsetsApiError(ApiErrorType.NOT_FOUND, "gone")
        assert ApiErrorHandler.classify(error) == ApiErrorType.NOT_FOUND


class TestRetryPolicy:
    """Test retryability and backoff."""

    @pytest.mark.parametrize(
        "kind,retryable",
        [
            (ApiErrorType.RATE_LIMIT, True),
            (ApiErrorType.SERVER_ERROR, True),
            (ApiErrorType.NETWORK_ERROR, True),
            (ApiErrorType.TIMEOUT_ERROR, True),
            (ApiErrorType.AUTHENTICATION, False),
            (ApiErrorType.AUTHORIZATION, False),
            (ApiErrorType.NOT_FOUND, False),
            (ApiErrorType.VALIDATION, False),
            (ApiErrorType.CIRCUIT_BREAKER_OPEN, False),
        ],
    )
    def test_should_retry(self, kind, retryable):
        assert ApiErrorHandler.should_retry(kind) is retryable
        assert ApiErrorHandler.is_temporary_error(kind) is retryable
        assert ApiErrorHandler.is_permanent_error(kind) is not retryable

    def test_unknown_kind_is_neither(self):
        assert ApiErrorHandler.should_retry("SOMETHING_ELSE") is False
        assert ApiErrorHandler.is_permanent_error("SOMETHING_ELSE") is False

    def test_rate_limit_delay_doubles_without_jitter(self):
        delays = [ApiErrorHandler.get_retry_delay(a, ApiErrorType.RATE_LIMIT, 1000, 10000) for a in range(4)]
        assert delays == [2000, 4000, 8000, 10000]

    def test_jitter_bounds(self):
        for attempt in range(3):
            delay = ApiErrorHandler.get_retry_delay(attempt, ApiErrorType.SERVER_ERROR, 1000, 100000)
            assert 1000 * 2 ** attempt <= delay <= 1100 * 2 ** attempt

    def test_delay_monotonic_and_capped(self):
        """With jitter pinned, delays never shrink and never exceed the cap."""
        with patch("exa_websets.app.client.error_handler.random.uniform", return_value=0.1):
            delays = [
                ApiErrorHandler.get_retry_delay(a, ApiErrorType.NETWORK_ERROR, 1000, 10000) for a in range(8)
            ]

        assert delays == sorted(delays)
        assert max(delays) == 10000
        assert delays[0] == 1100

    def test_evaluate(self):
        assert isinstance(ApiErrorHandler.evaluate(_status_error(503)), Retryable)
        assert isinstance(ApiErrorHandler.evaluate(_status_error(404)), Fatal)


class TestCreateApiError:
    """Test normalization into WebsetsApiError."""

    def test_server_error_body_wins(self):
        error = _status_error(
            422,
            json={"error": {"code": "INVALID_QUERY", "message": "query too long", "details": {"max": 5000}}},
        )

        api_error = ApiErrorHandler.create_api_error(error)

        assert api_error.kind == ApiErrorType.VALIDATION
        assert api_error.code == "INVALID_QUERY"
        assert api_error.message == "query too long"
        assert api_error.details == {"max": 5000}
        assert api_error.status == 422

    def test_plain_exception(self):
        try:
            raise httpx.ConnectError("connection refused", request=REQUEST)
        except httpx.ConnectError as e:
            api_error = ApiErrorHandler.create_api_error(e)

        assert api_error.kind == ApiErrorType.NETWORK_ERROR
        assert api_error.code == "NETWORK_ERROR"
        assert api_error.message == "connection refused"
        assert api_error.details["exception"] == "ConnectError"
        assert "stack" in api_error.details

    def test_response_text_in_details(self):
        api_error = ApiErrorHandler.create_api_error(_status_error(502, text="bad gateway"))

        assert api_error.details["status"] == 502
        assert api_error.details["response"] == "bad gateway"

    def test_string_error(self):
        api_error = ApiErrorHandler.create_api_error("something broke")
        assert api_error.message == "something broke"
        assert api_error.details is None

    def test_secrets_are_masked(self):
        error = RuntimeError("request failed with api_key=sk-12345 attached")

        api_error = ApiErrorHandler.create_api_error(error)

        assert "sk-12345" not in api_error.message
        assert "***MASKED***" in api_error.message

    def test_already_classified_passthrough(self):
        error = WebsetsApiError(ApiErrorType.NOT_FOUND, "gone")
        assert ApiErrorHandler.create_api_error(error) is error


class TestFormattingAndLogging:
    """Test message rendering and log severity."""

    def test_format_error_message(self):
        error = WebsetsApiError(ApiErrorType.VALIDATION, "bad input", code="BAD", details={"field": "query"})
        assert ApiErrorHandler.format_error_message(error) == 'BAD: bad input - {"field": "query"}'

    def test_format_masks_details(self):
        error = WebsetsApiError(ApiErrorType.VALIDATION, "bad", details={"token": "abc"})
        assert "abc" not in ApiErrorHandler.format_error_message(error)

    def test_user_friendly_message(self):
        error = WebsetsApiError(ApiErrorType.RATE_LIMIT, "429")
        assert ApiErrorHandler.get_user_friendly_message(error) == "Rate limit exceeded. Please try again later."

    def test_log_levels(self, caplog):
        caplog.set_level(logging.DEBUG, logger="exa_websets")

        ApiErrorHandler.log_error(WebsetsApiError(ApiErrorType.AUTHENTICATION, "bad key"), "Attempt 1/1")
        ApiErrorHandler.log_error(WebsetsApiError(ApiErrorType.NOT_FOUND, "gone"))

        assert caplog.records[0].levelno == logging.ERROR
        assert caplog.records[0].getMessage().startswith("[Attempt 1/1] Auth Error:")
        assert caplog.records[0].error_kind == "AUTHENTICATION_ERROR"
        assert caplog.records[1].levelno == logging.WARNING
