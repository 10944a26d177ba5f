from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Provider settings
    provider: Literal["openai", "mock"] = "openai"
    provider_api_key: str = ""
    provider_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    provider_model: str = "gemini-2.0-flash"
    provider_timeout: float = 60.0

    # Generation defaults
    temperature: float = 0.7
    max_tokens: int = 2000
    stream_max_tokens: int = 4000

    # Rate limiting settings (per identity)
    rate_limit_per_minute: int = 15
    rate_limit_per_hour: int = 250
    rate_limit_per_day: int = 500
    rate_limit_minute_seconds: int = 60
    rate_limit_hour_seconds: int = 60 * 60
    rate_limit_day_seconds: int = 24 * 60 * 60
    rate_limit_max_identities: int | None = None  # None = unbounded

    # Retry settings for streaming calls (exponential backoff)
    stream_retry_max_attempts: int = 3
    stream_retry_initial_delay: float = 2.0
    stream_retry_backoff_multiplier: float = 2.0

    # Retry settings for one-shot calls (constant delay)
    oneshot_retry_max_attempts: int = 3
    oneshot_retry_initial_delay: float = 2.0
    oneshot_retry_backoff_multiplier: float = 1.0

    retry_max_delay: float = 30.0

    # Header carrying the caller identity
    session_header: str = "X-Session-ID"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator(
        "rate_limit_per_minute",
        "rate_limit_per_hour",
        "rate_limit_per_day",
        "rate_limit_minute_seconds",
        "rate_limit_hour_seconds",
        "rate_limit_day_seconds",
    )
    @classmethod
    def validate_rate_limit_positive(cls, v: int) -> int:
        """Validate rate limit values are positive."""
        if v < 1:
            raise ValueError("Rate limit values must be at least 1")
        return v

    @field_validator("rate_limit_max_identities")
    @classmethod
    def validate_max_identities(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("rate_limit_max_identities must be at least 1")
        return v

    @field_validator("stream_retry_max_attempts", "oneshot_retry_max_attempts")
    @classmethod
    def validate_attempts_positive(cls, v: int) -> int:
        """Validate retry attempt ceilings are positive."""
        if v < 1:
            raise ValueError("retry attempts must be at least 1")
        return v

    @field_validator(
        "stream_retry_initial_delay",
        "oneshot_retry_initial_delay",
        "retry_max_delay",
    )
    @classmethod
    def validate_delay_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("retry delays must not be negative")
        return v

    @field_validator("stream_retry_backoff_multiplier", "oneshot_retry_backoff_multiplier")
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        """Validate backoff multiplier is at least 1."""
        if v < 1:
            raise ValueError("backoff multiplier must be at least 1")
        return v

    @field_validator("provider_timeout")
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
