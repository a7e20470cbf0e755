"""
Shared machinery for rule evaluators.

An evaluator is a pure function ``(ctx, config) -> RuleViolation | None``
registered against a rule code with the ``@rule`` decorator. It declares
which history sources it reads so the engine fetches only what the
facility's active rules need, and knows exactly which rules are affected
when a source cannot be read.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

from app.models import (
    ActionLog,
    Blackout,
    Booking,
    BookingRequest,
    BookingStatus,
    Court,
    FacilityPolicy,
    MembershipTier,
    RuleViolation,
    StrikeRecord,
    TimeRange,
)
from app.services.slots import SlotGrid, minutes_of
from app.services.windows import ranges_overlap

# ── History sources ───────────────────────────────────────────────────────

USER_BOOKINGS = "user_bookings"
HOUSEHOLD_BOOKINGS = "household_bookings"
STRIKES = "strikes"
ACTIONS = "actions"
COURT_BOOKINGS = "court_bookings"
BLACKOUTS = "blackouts"


# ── Context ───────────────────────────────────────────────────────────────


@dataclass
class EvaluationContext:
    """
    One request plus the snapshot of state every rule evaluates against.

    History lists are read once per evaluation and never cached beyond it.
    *now* is an aware datetime in the facility's timezone.
    """
    request: BookingRequest
    court: Court
    policy: FacilityPolicy
    grid: SlotGrid
    now: datetime
    slots: range
    is_prime_time: bool = False
    user_bookings: list[Booking] = field(default_factory=list)
    household_bookings: list[Booking] = field(default_factory=list)
    strikes: list[StrikeRecord] = field(default_factory=list)
    actions: list[ActionLog] = field(default_factory=list)
    # Confirmed bookings on the court and its split relatives for the requested date
    court_bookings: list[Booking] = field(default_factory=list)
    blackouts: list[Blackout] = field(default_factory=list)

    @property
    def today(self) -> date:
        return self.now.date()

    @property
    def start_at(self) -> datetime:
        return datetime.combine(
            self.request.booking_date, self.request.start_time, tzinfo=self.now.tzinfo,
        )

    @property
    def days_ahead(self) -> int:
        return (self.request.booking_date - self.today).days

    @property
    def tier(self) -> MembershipTier | None:
        return self.policy.tier(self.request.tier)

    def tier_cap(self, name: str, configured: int) -> int:
        """The requester's tier override for cap *name*, else the rule's own value."""
        override = getattr(self.tier, name, None)
        return configured if override is None else override

    @property
    def requested_minutes(self) -> int:
        """Requested duration after rounding up to whole slots."""
        return self.grid.duration_minutes(len(self.slots))

    @property
    def span(self) -> tuple[int, int]:
        """(start, end) of the occupied slots in minutes since midnight."""
        return self.grid.span_minutes(self.slots.start, len(self.slots))

    def booking_minutes(self, booking: Booking) -> int:
        return self.grid.duration_minutes(booking.slot_count)

    def booking_span(self, booking: Booking) -> tuple[int, int]:
        return self.grid.span_minutes(booking.start_slot_index, booking.slot_count)

    def booking_start_at(self, booking: Booking) -> datetime:
        return self.grid.slot_datetime(
            booking.booking_date, booking.start_slot_index, self.now.tzinfo,
        )


# ── Evaluator registry ────────────────────────────────────────────────────

Evaluator = Callable[[EvaluationContext, Any], "RuleViolation | None"]


@dataclass(frozen=True)
class RegisteredEvaluator:
    code: str
    func: Evaluator
    needs: frozenset[str]


EVALUATORS: dict[str, RegisteredEvaluator] = {}


def rule(code: str, *, needs: Iterable[str] = ()) -> Callable[[Evaluator], Evaluator]:
    """Register *func* as the evaluator for *code*."""
    def decorator(func: Evaluator) -> Evaluator:
        EVALUATORS[code] = RegisteredEvaluator(code, func, frozenset(needs))
        return func
    return decorator


def violation(code: str, message: str, **details: Any) -> RuleViolation:
    return RuleViolation(rule_code=code, message=message, details=details)


# ── Booking filters ───────────────────────────────────────────────────────


def counted(booking: Booking) -> bool:
    """Bookings that count toward volume caps: everything not canceled."""
    return booking.status != BookingStatus.CANCELED


def in_dates(booking: Booking, window: tuple[date, date]) -> bool:
    first, last = window
    return first <= booking.booking_date <= last


def upcoming_active(bookings: Iterable[Booking], today: date) -> list[Booking]:
    return [b for b in bookings if b.is_active and b.booking_date >= today]


def intersects_ranges(start: int, end: int, ranges: Iterable[TimeRange]) -> bool:
    """Whether [start, end) minutes touches any of *ranges*."""
    return any(
        ranges_overlap(start, end, minutes_of(r.start), minutes_of(r.end))
        for r in ranges
    )


def prime_time_applies(court: Court, day: date, start: int, end: int) -> bool:
    """Whether a [start, end) minute span on *day* touches the court's prime time."""
    windows = [w for w in court.prime_time_windows if w.day_of_week == day.weekday()]
    return intersects_ranges(start, end, windows)


def elapsed(earlier: datetime, later: datetime) -> timedelta:
    """Real time from *earlier* to *later*, across any UTC offset change."""
    return later.astimezone(timezone.utc) - earlier.astimezone(timezone.utc)


def minutes_between(earlier: datetime, later: datetime) -> int:
    return int(elapsed(earlier, later) // timedelta(minutes=1))
