"""Tests for retry mechanism with backoff."""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest

from tutorgate.app.core.config import Settings
from tutorgate.app.exceptions import (
    MalformedResponseError,
    ProviderError,
    RateLimitedError,
    RetryExhaustedError,
)
from tutorgate.app.providers.retry import RetryPolicy, run_with_retry


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://provider.test/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


def _openai_status_error(status_code: int) -> openai.APIStatusError:
    request = httpx.Request("POST", "https://provider.test/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return openai.APIStatusError(f"HTTP {status_code}", response=response, body=None)


class _SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, duration):
        self.calls.append(duration)


class TestRetryPolicy:
    """Test RetryPolicy configuration."""

    def test_default_values(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.initial_delay == 2.0
        assert policy.backoff_multiplier == 2.0
        assert policy.max_delay == 30.0

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    def test_exponential_delay(self):
        """Delays follow initial * multiplier^(attempt-1)."""
        policy = RetryPolicy(initial_delay=1.0, backoff_multiplier=2.0)
        assert policy.calculate_delay(1) == 1.0
        assert policy.calculate_delay(2) == 2.0
        assert policy.calculate_delay(3) == 4.0

    def test_constant_delay(self):
        policy = RetryPolicy(initial_delay=2.0, backoff_multiplier=1.0)
        assert [policy.calculate_delay(n) for n in (1, 2, 3)] == [2.0, 2.0, 2.0]

    def test_delay_capped(self):
        policy = RetryPolicy(initial_delay=10.0, backoff_multiplier=3.0, max_delay=15.0)
        assert policy.calculate_delay(2) == 15.0

    def test_presets_from_settings(self):
        config = Settings(
            stream_retry_max_attempts=4,
            stream_retry_initial_delay=1.0,
            oneshot_retry_initial_delay=0.5,
        )
        streaming = RetryPolicy.for_streaming(config)
        one_shot = RetryPolicy.for_one_shot(config)

        assert streaming.max_attempts == 4
        assert streaming.calculate_delay(3) == 4.0
        assert one_shot.max_attempts == 3
        assert one_shot.calculate_delay(3) == 0.5


class TestIsRetryable:
    """Test transient vs permanent error classification."""

    @pytest.mark.parametrize("status_code", [500, 502, 503, 429])
    def test_transient_http_status(self, status_code):
        assert RetryPolicy().is_retryable(_status_error(status_code)) is True
        assert RetryPolicy().is_retryable(_openai_status_error(status_code)) is True

    @pytest.mark.parametrize("status_code", [400, 401, 404, 422])
    def test_permanent_http_status(self, status_code):
        assert RetryPolicy().is_retryable(_status_error(status_code)) is False
        assert RetryPolicy().is_retryable(_openai_status_error(status_code)) is False

    def test_transport_errors(self):
        policy = RetryPolicy()
        request = httpx.Request("GET", "https://provider.test")
        assert policy.is_retryable(httpx.ConnectError("refused")) is True
        assert policy.is_retryable(httpx.ReadTimeout("slow")) is True
        assert policy.is_retryable(openai.APIConnectionError(request=request)) is True
        assert policy.is_retryable(asyncio.TimeoutError()) is True

    def test_provider_error_transient_flag(self):
        policy = RetryPolicy()
        assert policy.is_retryable(ProviderError("blip")) is True
        assert policy.is_retryable(ProviderError("bad key", transient=False)) is False

    def test_domain_errors_never_retried(self):
        policy = RetryPolicy(retryable_exceptions=(Exception,))
        assert policy.is_retryable(MalformedResponseError()) is False
        assert policy.is_retryable(RateLimitedError("student-1")) is False

    def test_unknown_errors_not_retried_by_default(self):
        assert RetryPolicy().is_retryable(ValueError("bug")) is False

    def test_treat_everything_as_transient(self):
        policy = RetryPolicy(retryable_exceptions=(Exception,))
        assert policy.is_retryable(ValueError("anything")) is True
        assert policy.is_retryable(ProviderError("bad key", transient=False)) is True
        assert policy.is_retryable(_status_error(400)) is True
        assert policy.is_retryable(_openai_status_error(401)) is True


class TestRunWithRetry:
    """Test run_with_retry."""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        operation = AsyncMock(return_value="ok")
        sleep = _SleepRecorder()
        with patch("asyncio.sleep", sleep):
            result = await run_with_retry(operation, RetryPolicy())
        assert result == "ok"
        assert operation.call_count == 1
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_fail_twice_then_succeed(self):
        """Three attempts, two inter-attempt delays."""
        operation = AsyncMock(side_effect=[
            ProviderError("first"),
            ProviderError("second"),
            "ok",
        ])
        sleep = _SleepRecorder()
        with patch("asyncio.sleep", sleep):
            result = await run_with_retry(operation, RetryPolicy(max_attempts=3, initial_delay=2.0))

        assert result == "ok"
        assert operation.call_count == 3
        assert sleep.calls == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_constant_delay_between_attempts(self):
        operation = AsyncMock(side_effect=[ProviderError("a"), ProviderError("b"), "ok"])
        sleep = _SleepRecorder()
        with patch("asyncio.sleep", sleep):
            await run_with_retry(operation, RetryPolicy(initial_delay=2.0, backoff_multiplier=1.0))
        assert sleep.calls == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhaustion_carries_last_message(self):
        operation = AsyncMock(side_effect=[
            ProviderError("timeout one"),
            ProviderError("timeout two"),
            ProviderError("connection reset"),
        ])
        sleep = _SleepRecorder()
        with patch("asyncio.sleep", sleep):
            with pytest.raises(RetryExhaustedError) as exc_info:
                await run_with_retry(operation, RetryPolicy(max_attempts=3))

        error = exc_info.value
        assert error.last_error == "connection reset"
        assert error.attempts == 3
        assert error.retryable is True
        assert "connection reset" in str(error)
        assert isinstance(error.__cause__, ProviderError)
        assert operation.call_count == 3
        assert len(sleep.calls) == 2

    @pytest.mark.asyncio
    async def test_single_attempt_policy(self):
        operation = AsyncMock(side_effect=ProviderError("down"))
        with pytest.raises(RetryExhaustedError):
            await run_with_retry(operation, RetryPolicy(max_attempts=1))
        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_permanent_error_stops_immediately(self):
        operation = AsyncMock(side_effect=_status_error(401))
        sleep = _SleepRecorder()
        with patch("asyncio.sleep", sleep):
            with pytest.raises(RetryExhaustedError) as exc_info:
                await run_with_retry(operation, RetryPolicy(max_attempts=3))

        assert exc_info.value.retryable is False
        assert exc_info.value.attempts == 1
        assert operation.call_count == 1
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_transient_status_retried(self):
        operation = AsyncMock(side_effect=[_status_error(503), "ok"])
        with patch("asyncio.sleep", _SleepRecorder()):
            assert await run_with_retry(operation, RetryPolicy()) == "ok"
        assert operation.call_count == 2

    @pytest.mark.asyncio
    async def test_malformed_response_propagates_unchanged(self):
        operation = AsyncMock(side_effect=MalformedResponseError("Missing required key: domain"))
        with pytest.raises(MalformedResponseError, match="domain"):
            await run_with_retry(operation, RetryPolicy(retryable_exceptions=(Exception,)))
        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_error_without_message_uses_type_name(self):
        operation = AsyncMock(side_effect=asyncio.TimeoutError())
        with patch("asyncio.sleep", _SleepRecorder()):
            with pytest.raises(RetryExhaustedError) as exc_info:
                await run_with_retry(operation, RetryPolicy(max_attempts=2))
        assert exc_info.value.last_error == "TimeoutError"

    @pytest.mark.asyncio
    async def test_attempts_are_logged(self):
        operation = AsyncMock(side_effect=[ProviderError("blip"), "ok"])
        with patch("asyncio.sleep", _SleepRecorder()), \
                patch("tutorgate.app.providers.retry.logger") as mock_logger:
            await run_with_retry(operation, RetryPolicy(), name="generate", log_extra={"identity": "s-1"})

        mock_logger.warning.assert_called_once()
        message = mock_logger.warning.call_args[0][0]
        assert "Retry 1/3 for generate" in message
        assert mock_logger.warning.call_args[1]["extra"] == {"identity": "s-1", "attempt": 1}

    @pytest.mark.asyncio
    async def test_permanent_errors_retried_when_everything_is_transient(self):
        operation = AsyncMock(side_effect=[
            ProviderError("bad key", transient=False),
            _status_error(400),
            "ok",
        ])
        sleep = _SleepRecorder()
        with patch("asyncio.sleep", sleep):
            result = await run_with_retry(
                operation,
                RetryPolicy(initial_delay=2.0, backoff_multiplier=1.0, retryable_exceptions=(Exception,)),
            )
        assert result == "ok"
        assert operation.call_count == 3
        assert sleep.calls == [2.0, 2.0]
