"""Multi-window per-identity rate limiter.

Every identity gets three fixed windows (minute, hour, day). A request is
admitted only if all windows have capacity, and only then is it counted
against all of them: a request denied by the daily cap consumes no minute
or hour quota.
"""

import threading
import time
from typing import Callable, Dict, Optional

from tutorgate.app.core.config import Settings, settings
from tutorgate.app.core.logging import get_logger
from tutorgate.app.services.rate_limit.models import WindowSpec, WindowStatus
from tutorgate.app.services.rate_limit.store import QuotaStore

logger = get_logger(__name__)


class RateLimiter:
    """Admits or rejects requests per identity across overlapping windows.

    The check-and-commit sequence runs under a lock, so callers on several
    threads cannot interleave their read and commit phases.
    """

    def __init__(
        self,
        store: Optional[QuotaStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the rate limiter.

        Args:
            store: Identity quota store (a fresh default store if None)
            clock: Returns the current time in seconds
        """
        self.store = store if store is not None else QuotaStore()
        self._clock = clock
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "RateLimiter":
        """Build a limiter whose windows come from settings."""
        config = config or settings
        specs = (
            WindowSpec("minute", config.rate_limit_per_minute, config.rate_limit_minute_seconds * 1000),
            WindowSpec("hour", config.rate_limit_per_hour, config.rate_limit_hour_seconds * 1000),
            WindowSpec("day", config.rate_limit_per_day, config.rate_limit_day_seconds * 1000),
        )
        return cls(QuotaStore(specs, max_identities=config.rate_limit_max_identities))

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def admit(self, identity: str) -> bool:
        """Check all windows and count the request if every one has room.

        Args:
            identity: Opaque caller key

        Returns:
            True if admitted; False leaves every window untouched
        """
        with self._lock:
            now_ms = self._now_ms()
            quota = self.store.get_or_create(identity, now_ms)

            blocked = [
                name for name, window in quota.windows.items()
                if not window.allows(now_ms)
            ]
            if blocked:
                logger.info(
                    f"Rate limit exceeded on window(s): {', '.join(blocked)}",
                    extra={"identity": identity},
                )
                return False

            for window in quota.windows.values():
                window.commit(now_ms)
            return True

    def describe(self, identity: str) -> Dict[str, WindowStatus]:
        """Report remaining requests and time to reset for each window.

        Never mutates state. An unknown identity reports full caps with
        ``reset_in_ms = 0``.
        """
        with self._lock:
            quota = self.store.get(identity)
            if quota is None:
                return {
                    spec.name: WindowStatus(remaining=spec.max, reset_in_ms=0)
                    for spec in self.store.window_specs
                }

            now_ms = self._now_ms()
            return {
                name: WindowStatus(
                    remaining=window.remaining(now_ms),
                    reset_in_ms=window.reset_in_ms(now_ms),
                )
                for name, window in quota.windows.items()
            }

    def describe_dict(self, identity: str) -> Dict[str, Dict[str, int]]:
        """``describe`` as plain dicts, for logging and API responses."""
        return {name: status.to_dict() for name, status in self.describe(identity).items()}
