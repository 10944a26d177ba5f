"""Per-identity multi-window rate limiting."""

from tutorgate.app.services.rate_limit.limiter import RateLimiter
from tutorgate.app.services.rate_limit.models import (
    DAY_MS,
    DEFAULT_WINDOWS,
    HOUR_MS,
    MINUTE_MS,
    IdentityQuota,
    RateWindow,
    WindowSpec,
    WindowStatus,
)
from tutorgate.app.services.rate_limit.store import QuotaStore

__all__ = [
    # Models
    "DAY_MS",
    "DEFAULT_WINDOWS",
    "HOUR_MS",
    "MINUTE_MS",
    "IdentityQuota",
    "RateWindow",
    "WindowSpec",
    "WindowStatus",
    # Store
    "QuotaStore",
    # Limiter
    "RateLimiter",
]
