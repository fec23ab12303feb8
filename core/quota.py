"""
core/quota.py -- Rate-limit state and the quota guard.

The GitHub client overwrites RateLimitState after every successful response.
QuotaGuard is the only reader that acts on it: before each remote call it
checks the last observed budget and, when the budget is nearly spent, sleeps
until the window resets plus a safety padding.

Usage:
    state = RateLimitState()
    guard = QuotaGuard(state)
    guard.ensure_quota()   # returns immediately or blocks until reset
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

logger = logging.getLogger("orgaudit.quota")

DEFAULT_LOW_WATER_MARK = 50
DEFAULT_PADDING = timedelta(minutes=2)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RateLimit:
    remaining: int
    reset: datetime  # timezone-aware UTC


class RateLimitState:
    """Process-wide record of the most recent rate limit seen on the wire."""

    def __init__(self) -> None:
        self.current: Optional[RateLimit] = None

    def observe(self, rate_limit: RateLimit) -> None:
        self.current = rate_limit


class QuotaGuard:
    def __init__(
        self,
        state: RateLimitState,
        low_water_mark: int = DEFAULT_LOW_WATER_MARK,
        padding: timedelta = DEFAULT_PADDING,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.state = state
        self.low_water_mark = low_water_mark
        self.padding = padding
        self._clock = clock
        self._sleep = sleep

    def wait_time(self) -> Optional[timedelta]:
        """Return how long to wait before the next call, or None to go ahead.

        Nothing observed yet means the first call goes out optimistically.
        The result can be zero or negative when the local clock is ahead of
        GitHub's reset timestamp.
        """
        rate_limit = self.state.current
        if rate_limit is None or rate_limit.remaining > self.low_water_mark:
            return None
        return (rate_limit.reset - self._clock()) + self.padding

    def ensure_quota(self) -> None:
        wait = self.wait_time()
        if wait is None:
            return
        rate_limit = self.state.current
        logger.warning(
            "API rate limit nearly exhausted (%d remaining). Waiting %.0f minutes until it resets (%s).",
            rate_limit.remaining,
            wait.total_seconds() / 60,
            rate_limit.reset.astimezone().strftime("%Y-%m-%d %H:%M"),
        )
        self._sleep(max(0.0, wait.total_seconds()))
