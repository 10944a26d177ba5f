"""Custom exceptions for the tutorgate application."""

from typing import Any, Dict, Optional, Sequence


class TutorGateException(Exception):
    """Base class for tutorgate exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str = "Tutorgate error"):
        self.message = message
        super().__init__(message)

    def to_response(self) -> Dict[str, Any]:
        """Convert to API response format."""
        return {"error": self.error_code, "message": self.message}


class RateLimitedError(TutorGateException):
    """Raised when an identity has exhausted one of its request windows.

    Maps to HTTP 429 Too Many Requests. Not retried automatically.
    """
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        identity: str,
        quota: Optional[Dict[str, Dict[str, int]]] = None,
        detail: str = "Rate limit exceeded. Please try again later.",
    ):
        self.identity = identity
        self.quota = quota or {}
        super().__init__(detail)

    @property
    def retry_after(self) -> int:
        """Seconds until every exhausted window has reset (the longest wait)."""
        waits = [
            window["reset_in_ms"]
            for window in self.quota.values()
            if window.get("remaining", 1) == 0
        ]
        if not waits:
            return 0
        return -(-max(waits) // 1000)

    def to_response(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "retry_after": self.retry_after,
            "quota": self.quota,
        }


class RetryExhaustedError(TutorGateException):
    """Raised when every attempt at a provider call failed.

    Carries the message of the last underlying error. ``retryable`` is
    False when attempts stopped early on a permanent failure.
    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502
    error_code = "provider_unavailable"

    def __init__(
        self,
        last_error: str,
        attempts: int,
        retryable: bool = True,
    ):
        self.last_error = last_error
        self.attempts = attempts
        self.retryable = retryable
        super().__init__(
            f"Provider call failed after {attempts} attempt(s): {last_error}"
        )

    def to_response(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "attempts": self.attempts,
        }


class MalformedResponseError(TutorGateException):
    """Raised when a provider response is not valid JSON or lacks required keys.

    Not retried: the same prompt is unlikely to fix a format violation.
    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502
    error_code = "malformed_response"

    def __init__(
        self,
        detail: str = "Invalid JSON response from provider",
        missing_keys: Sequence[str] = (),
    ):
        self.missing_keys = list(missing_keys)
        super().__init__(detail)

    def to_response(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "missing_keys": self.missing_keys,
        }


class ProviderError(TutorGateException):
    """Raised by providers for a failed generation attempt.

    ``transient`` marks failures worth another attempt. Never crosses the
    gateway boundary: the retry layer converts it to RetryExhaustedError.
    """
    status_code = 502
    error_code = "provider_error"

    def __init__(self, message: str = "Provider request failed", transient: bool = True):
        self.transient = transient
        super().__init__(message)
