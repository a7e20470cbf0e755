"""
Sliding-window action limiter.

Counts an account's logged actions inside the trailing window
``(now - window_seconds, now]`` straight from the action log. There are no
buckets, so a burst straddling a bucket edge cannot slip through twice
the allowance.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable
from datetime import datetime, timedelta

from app.models import ActionLog
from app.services.rules.catalog import ActionRateLimit, is_unlimited


class SlidingWindowRateLimiter:
    def __init__(self, config: ActionRateLimit) -> None:
        self.config = config
        self._types = frozenset(config.action_types)

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.config.window_seconds)

    def _timestamps(self, actions: Iterable[ActionLog]) -> list[datetime]:
        return sorted(
            a.timestamp for a in actions if a.action_type in self._types
        )

    def actions_within_window(self, actions: Iterable[ActionLog], now: datetime) -> int:
        timestamps = self._timestamps(actions)
        # Half-open on the left: an action exactly one window old has expired
        lo = bisect_right(timestamps, now - self.window)
        hi = bisect_right(timestamps, now)
        return hi - lo

    def is_limited(self, actions: Iterable[ActionLog], now: datetime) -> bool:
        if is_unlimited(self.config.max_actions):
            return False
        return self.actions_within_window(actions, now) >= self.config.max_actions

    def retry_after(self, actions: Iterable[ActionLog], now: datetime) -> float:
        """Seconds until one more action would be admitted (0 when not limited)."""
        if not self.is_limited(actions, now):
            return 0.0
        if self.config.max_actions == 0:
            return float(self.config.window_seconds)
        timestamps = self._timestamps(actions)
        in_window = timestamps[
            bisect_right(timestamps, now - self.window):bisect_right(timestamps, now)
        ]
        # Dropping below max needs the (count - max + 1) oldest to expire
        pivot = in_window[len(in_window) - self.config.max_actions]
        return max((pivot + self.window - now).total_seconds(), 0.0)
