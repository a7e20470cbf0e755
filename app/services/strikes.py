"""
Strike/lockout tracker.

Strikes are an append-only log. Nothing about a lockout is stored: it is
re-derived from the log and the current ACC-009 config on every call, so
changing the threshold or lockout length reinterprets existing history
without a migration.

A strike *triggers* a lockout when, counting it and every earlier strike
inside the trailing strike window, the total reaches the threshold. The
account is locked out while ``now`` is within ``lockout_days`` of the most
recent triggering strike. A negative threshold disables lockouts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from app.models import StrikeRecord
from app.services.rules.catalog import StrikeLockout, is_unlimited

logger = logging.getLogger(__name__)


class StrikeTracker:
    """Derives active strike counts and lockout status from strike history."""

    def __init__(self, config: StrikeLockout) -> None:
        self.config = config

    @property
    def window(self) -> timedelta:
        return timedelta(days=self.config.strike_window_days)

    @property
    def lockout(self) -> timedelta:
        return timedelta(days=self.config.lockout_days)

    def _history(self, strikes: Iterable[StrikeRecord], now: datetime) -> list[datetime]:
        # Strikes stamped after `now` have not happened yet from this call's view
        return sorted(s.timestamp for s in strikes if s.timestamp <= now)

    def active_strikes(self, strikes: Iterable[StrikeRecord], now: datetime) -> int:
        """Strikes with timestamp in [now - strike_window_days, now]."""
        since = now - self.window
        return sum(1 for ts in self._history(strikes, now) if ts >= since)

    def triggering_strike(self, strikes: Iterable[StrikeRecord], now: datetime) -> datetime | None:
        """Timestamp of the most recent strike that reached the threshold, if any."""
        threshold = self.config.strike_threshold
        if is_unlimited(threshold):
            return None
        history = self._history(strikes, now)
        trigger: datetime | None = None
        first = 0
        for i, ts in enumerate(history):
            while history[first] < ts - self.window:
                first += 1
            if i - first + 1 >= threshold:
                trigger = ts
        return trigger

    def lockout_ends_at(self, strikes: Iterable[StrikeRecord], now: datetime) -> datetime | None:
        """End of the current lockout, or None when the account is not locked out."""
        trigger = self.triggering_strike(strikes, now)
        if trigger is None:
            return None
        ends_at = trigger + self.lockout
        return ends_at if now < ends_at else None

    def is_locked_out(self, strikes: Iterable[StrikeRecord], now: datetime) -> bool:
        return self.lockout_ends_at(strikes, now) is not None
