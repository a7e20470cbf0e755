"""
Clock and facility-timezone resolution.

Every "now" the engine uses comes through a Clock so evaluation is
deterministic under test. Facility-local dates and times are derived from
the aware datetime the clock returns for the facility's zone.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def now(self, tz: tzinfo) -> datetime:
        """Return the current instant as an aware datetime in *tz*."""
        ...


class SystemClock:
    """Wall clock."""

    def now(self, tz: tzinfo) -> datetime:
        return datetime.now(tz)


class FixedClock:
    """Manually driven clock for tests and replays."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("FixedClock needs an aware datetime")
        self._instant = instant

    def now(self, tz: tzinfo) -> datetime:
        return self._instant.astimezone(tz)

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("FixedClock needs an aware datetime")
        self._instant = instant

    def advance(self, **kwargs: float) -> None:
        self._instant += timedelta(**kwargs)


@lru_cache(maxsize=64)
def facility_zone(name: str) -> tzinfo:
    """Resolve an IANA zone name, falling back to UTC for blank names."""
    if not name:
        return timezone.utc
    return ZoneInfo(name)
