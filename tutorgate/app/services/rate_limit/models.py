"""Rate limiting data models.

This module contains dataclasses for per-identity window state and the
read-only status reported by ``RateLimiter.describe``.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


@dataclass(frozen=True)
class WindowSpec:
    """Static definition of one quota window (granularity, cap, duration)."""
    name: str
    max: int
    duration_ms: int


DEFAULT_WINDOWS: Tuple[WindowSpec, ...] = (
    WindowSpec("minute", 15, MINUTE_MS),
    WindowSpec("hour", 250, HOUR_MS),
    WindowSpec("day", 500, DAY_MS),
)


@dataclass
class RateWindow:
    """Counter for one time granularity of one identity."""
    max: int
    window_duration_ms: int
    used: int = 0
    window_reset_at_ms: int = 0

    def is_due(self, now_ms: int) -> bool:
        """True once ``now`` has passed the reset time."""
        return now_ms > self.window_reset_at_ms

    def effective_used(self, now_ms: int) -> int:
        """Usage as it would be after a pending reset."""
        return 0 if self.is_due(now_ms) else self.used

    def allows(self, now_ms: int) -> bool:
        return self.effective_used(now_ms) < self.max

    def commit(self, now_ms: int) -> None:
        """Apply a pending reset, then count one request."""
        if self.is_due(now_ms):
            self.used = 0
            self.window_reset_at_ms = now_ms + self.window_duration_ms
        self.used += 1

    def remaining(self, now_ms: int) -> int:
        return max(0, self.max - self.effective_used(now_ms))

    def reset_in_ms(self, now_ms: int) -> int:
        if self.is_due(now_ms):
            return 0
        return max(0, self.window_reset_at_ms - now_ms)


@dataclass
class IdentityQuota:
    """The three windows of one identity, in evaluation order."""
    windows: Dict[str, RateWindow] = field(default_factory=dict)

    @classmethod
    def create(cls, specs: Tuple[WindowSpec, ...], now_ms: int) -> "IdentityQuota":
        return cls(windows={
            spec.name: RateWindow(
                max=spec.max,
                window_duration_ms=spec.duration_ms,
                window_reset_at_ms=now_ms + spec.duration_ms,
            )
            for spec in specs
        })


@dataclass(frozen=True)
class WindowStatus:
    """Read-only view of one window."""
    remaining: int
    reset_in_ms: int

    def to_dict(self) -> Dict[str, int]:
        return {"remaining": self.remaining, "reset_in_ms": self.reset_in_ms}
