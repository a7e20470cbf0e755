"""Calendar windows and interval helpers shared by the rule evaluators."""

from __future__ import annotations

from datetime import date, timedelta
from enum import Enum

WEEKDAY_NAMES = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


class WindowType(str, Enum):
    CALENDAR_WEEK = "calendar_week"
    ROLLING_7_DAYS = "rolling_7_days"


def week_window(window_type: WindowType, today: date) -> tuple[date, date]:
    """
    Inclusive (first, last) dates of the weekly window around *today*.

    Calendar weeks run Sunday through Saturday; the rolling window is the
    last seven days including today.
    """
    if window_type == WindowType.ROLLING_7_DAYS:
        return today - timedelta(days=6), today
    first = today - timedelta(days=(today.weekday() + 1) % 7)
    return first, first + timedelta(days=6)


def weekend_window(day: date) -> tuple[date, date]:
    """Saturday and Sunday of the weekend containing *day*, or the next one."""
    weekday = day.weekday()
    if weekday == 6:
        return day - timedelta(days=1), day
    saturday = day + timedelta(days=5 - weekday)
    return saturday, saturday + timedelta(days=1)


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def ranges_overlap(
    start_a: int, end_a: int, start_b: int, end_b: int, grace: int = 0,
) -> bool:
    """Half-open overlap test; *grace* shrinks the second range on both ends."""
    return start_a < end_b - grace and end_a > start_b + grace
