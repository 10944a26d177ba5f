"""Retry mechanism with backoff for provider calls.

This module provides a configurable retry policy and a ``run_with_retry``
helper. Delays grow as
``initial_delay * backoff_multiplier ** (attempt - 1)``; a multiplier of 1
gives a constant delay between attempts.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type, TypeVar

import httpx
import openai

from tutorgate.app.core.config import Settings, settings
from tutorgate.app.core.logging import get_logger
from tutorgate.app.exceptions import (
    MalformedResponseError,
    ProviderError,
    RateLimitedError,
    RetryExhaustedError,
)

logger = get_logger(__name__)

T = TypeVar("T")

# Domain errors that propagate unchanged and are never retried
PASSTHROUGH_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    MalformedResponseError,
    RateLimitedError,
    RetryExhaustedError,
)

DEFAULT_RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    ProviderError,
    httpx.HTTPStatusError,
    httpx.TransportError,
    openai.APIConnectionError,
    openai.APIStatusError,
    asyncio.TimeoutError,
)


def _is_transient_status(status_code: int) -> bool:
    return status_code >= 500 or status_code == 429


@dataclass
class RetryPolicy:
    """Configuration for bounded retry with backoff.

    Attributes:
        max_attempts: Total number of attempts, first call included (default: 3)
        initial_delay: Delay before the second attempt in seconds (default: 2.0)
        backoff_multiplier: Growth factor between delays; 1.0 keeps them constant
        max_delay: Upper bound for a single delay in seconds (default: 30.0)
        retryable_exceptions: Exception types considered transient

    Example:
        >>> policy = RetryPolicy(max_attempts=3, initial_delay=1.0)
        >>> policy.calculate_delay(attempt=2)
        2.0
    """

    max_attempts: int = 3
    initial_delay: float = 2.0
    backoff_multiplier: float = 2.0
    max_delay: float = 30.0
    retryable_exceptions: Tuple[Type[Exception], ...] = DEFAULT_RETRYABLE_EXCEPTIONS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def calculate_delay(self, attempt: int) -> float:
        """Calculate the wait after a failed attempt.

        Args:
            attempt: The attempt that just failed (1-indexed)

        Returns:
            Delay in seconds
        """
        delay = self.initial_delay * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_delay)

    def is_retryable(self, exception: BaseException) -> bool:
        """Check if an exception should trigger another attempt.

        With the default exception set, HTTP status failures are retried
        only for 5xx and 429 and provider errors only when flagged
        transient. A custom ``retryable_exceptions`` tuple retries every
        matching error as is.
        """
        if isinstance(exception, PASSTHROUGH_EXCEPTIONS):
            return False
        if not isinstance(exception, self.retryable_exceptions):
            return False
        if self.retryable_exceptions != DEFAULT_RETRYABLE_EXCEPTIONS:
            return True
        if isinstance(exception, httpx.HTTPStatusError):
            return _is_transient_status(exception.response.status_code)
        if isinstance(exception, openai.APIStatusError):
            return _is_transient_status(exception.status_code)
        if isinstance(exception, ProviderError):
            return exception.transient
        return True

    @classmethod
    def for_streaming(cls, config: Optional[Settings] = None) -> "RetryPolicy":
        """Policy used for streaming calls (exponential backoff)."""
        config = config or settings
        return cls(
            max_attempts=config.stream_retry_max_attempts,
            initial_delay=config.stream_retry_initial_delay,
            backoff_multiplier=config.stream_retry_backoff_multiplier,
            max_delay=config.retry_max_delay,
        )

    @classmethod
    def for_one_shot(cls, config: Optional[Settings] = None) -> "RetryPolicy":
        """Policy used for single complete-response calls (constant delay)."""
        config = config or settings
        return cls(
            max_attempts=config.oneshot_retry_max_attempts,
            initial_delay=config.oneshot_retry_initial_delay,
            backoff_multiplier=config.oneshot_retry_backoff_multiplier,
            max_delay=config.retry_max_delay,
        )


def _error_message(exception: BaseException) -> str:
    return str(exception) or type(exception).__name__


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    name: str = "provider call",
    log_extra: Optional[Dict[str, Any]] = None,
) -> T:
    """Run ``operation`` until it succeeds or the policy gives up.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: RetryPolicy configuration. Uses defaults if not provided.
        name: Label used in log messages
        log_extra: Context fields attached to log records

    Returns:
        The first successful result

    Raises:
        RetryExhaustedError: All attempts failed, or a permanent failure
            stopped the attempts early
        MalformedResponseError, RateLimitedError: Propagated unchanged
    """
    retry_policy = policy or RetryPolicy()
    extra = dict(log_extra or {})

    for attempt in range(1, retry_policy.max_attempts + 1):
        try:
            return await operation()
        except PASSTHROUGH_EXCEPTIONS:
            raise
        except Exception as e:
            message = _error_message(e)
            extra["attempt"] = attempt

            if not retry_policy.is_retryable(e):
                logger.warning(
                    f"Non-retryable failure in {name}: {type(e).__name__}: {message}",
                    extra=extra,
                )
                raise RetryExhaustedError(message, attempts=attempt, retryable=False) from e

            if attempt >= retry_policy.max_attempts:
                logger.error(
                    f"Max attempts ({retry_policy.max_attempts}) exceeded for {name}: "
                    f"{type(e).__name__}: {message}",
                    extra=extra,
                )
                raise RetryExhaustedError(message, attempts=attempt) from e

            delay = retry_policy.calculate_delay(attempt)
            logger.warning(
                f"Retry {attempt}/{retry_policy.max_attempts} for {name} "
                f"after {type(e).__name__}: {message}. Waiting {delay:.2f}s...",
                extra=extra,
            )
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
