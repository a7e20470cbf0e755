"""
Slot model – the discretized bookable day.

A facility's day is the window [day_start_hour, day_end_hour) cut into
fixed-width slots. Every other component talks in slot indices rather
than time strings:

    grid = SlotGrid(6, 21, 15)
    grid.slot_index(time(10, 0))        # 16
    grid.slot_time(16)                  # time(10, 0)
    grid.slots_for_duration(16, 45)     # range(16, 19)

Operating hours never cross midnight, so index order is time order.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from typing import Iterator

from app.errors import InvalidDuration, OutOfWindow
from app.models import FacilityPolicy


def minutes_of(t: time) -> int:
    """Minutes since midnight (seconds are ignored)."""
    return t.hour * 60 + t.minute


@dataclass(frozen=True)
class SlotGrid:
    """
    Slot geometry of a facility.

    Attributes:
        day_start_hour: First bookable hour (inclusive)
        day_end_hour: Closing hour (exclusive, may be 24)
        granularity_minutes: Slot width; must divide 60
    """
    day_start_hour: int
    day_end_hour: int
    granularity_minutes: int

    def __post_init__(self) -> None:
        if self.granularity_minutes <= 0 or 60 % self.granularity_minutes:
            raise ValueError(
                f"granularity_minutes must divide 60, got {self.granularity_minutes}"
            )
        if not 0 <= self.day_start_hour < self.day_end_hour <= 24:
            raise ValueError(
                f"invalid day window {self.day_start_hour}-{self.day_end_hour}"
            )

    @classmethod
    def for_policy(cls, policy: FacilityPolicy) -> "SlotGrid":
        return cls(
            policy.day_start_hour,
            policy.day_end_hour,
            policy.slot_granularity_minutes,
        )

    # ── Geometry ───────────────────────────────────────────────────────

    @property
    def slots_per_day(self) -> int:
        return (self.day_end_hour - self.day_start_hour) * 60 // self.granularity_minutes

    @property
    def _window_start(self) -> int:
        return self.day_start_hour * 60

    @property
    def _window_end(self) -> int:
        return self.day_end_hour * 60

    # ── Conversions ────────────────────────────────────────────────────

    def slot_index(self, t: time) -> int:
        """Index of the slot containing *t*; raises OutOfWindow outside the day."""
        minutes = minutes_of(t)
        if not self._window_start <= minutes < self._window_end:
            raise OutOfWindow(
                f"{t.strftime('%H:%M')} is outside the bookable window "
                f"{self.day_start_hour:02d}:00-{self.day_end_hour:02d}:00",
                time=t.isoformat(),
            )
        return (minutes - self._window_start) // self.granularity_minutes

    def slot_time(self, index: int) -> time:
        """Start time of slot *index*."""
        if not 0 <= index < self.slots_per_day:
            raise OutOfWindow(f"slot index {index} is outside the day", index=index)
        minutes = self._window_start + index * self.granularity_minutes
        return time(minutes // 60, minutes % 60)

    def is_aligned(self, t: time) -> bool:
        return t.second == 0 and t.microsecond == 0 and (
            (minutes_of(t) - self._window_start) % self.granularity_minutes == 0
        )

    def slots_for_duration(self, start_index: int, minutes: int) -> range:
        """
        Slots covering *minutes* from *start_index*, rounded up so the
        booking always covers the requested end time.
        """
        if minutes <= 0:
            raise InvalidDuration(f"duration must be positive, got {minutes}", minutes=minutes)
        if not 0 <= start_index < self.slots_per_day:
            raise OutOfWindow(f"slot index {start_index} is outside the day", index=start_index)
        count = -(-minutes // self.granularity_minutes)
        if start_index + count > self.slots_per_day:
            raise InvalidDuration(
                f"{minutes} minutes from {self.slot_time(start_index).strftime('%H:%M')} "
                f"runs past closing at {self.day_end_hour:02d}:00",
                minutes=minutes,
            )
        return range(start_index, start_index + count)

    def slots_covering(self, start: time, minutes: int) -> range:
        """Like slots_for_duration, but tolerates a start that is off the grid."""
        start_index = self.slot_index(start)
        lead = minutes_of(start) - minutes_of(self.slot_time(start_index))
        return self.slots_for_duration(start_index, lead + minutes)

    def span_minutes(self, start_index: int, slot_count: int) -> tuple[int, int]:
        """(start, end) of a slot run in minutes since midnight."""
        start = self._window_start + start_index * self.granularity_minutes
        return start, start + slot_count * self.granularity_minutes

    def duration_minutes(self, slot_count: int) -> int:
        return slot_count * self.granularity_minutes

    # ── Day sequence ───────────────────────────────────────────────────

    def iter_slots(self) -> Iterator[tuple[int, time]]:
        for index in range(self.slots_per_day):
            yield index, self.slot_time(index)

    def slot_datetime(self, day: date, index: int, tz: tzinfo) -> datetime:
        """Aware start datetime of slot *index* on *day*."""
        return datetime.combine(day, self.slot_time(index), tzinfo=tz)

    def day_slots(self, day: date, tz: tzinfo) -> list[datetime]:
        """Full slot sequence of the operating window on *day*."""
        return [datetime.combine(day, t, tzinfo=tz) for _, t in self.iter_slots()]
