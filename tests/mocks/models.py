"""
Pre-built model instances for use in tests.

Import individual fixtures or use the factory helpers to create
custom variants:

    from tests.mocks.models import MOCK_POLICY, make_booking, make_request

Time is pinned: NOW is Wednesday 2026-03-11 09:00 in New York. The
calendar week around it runs Sunday 03-08 through Saturday 03-14.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from itertools import count
from typing import Any
from zoneinfo import ZoneInfo

from app.models import (
    Booking,
    BookingRequest,
    BookingStatus,
    Court,
    CourtStatus,
    CourtType,
    FacilityPolicy,
    PrimeTimeWindow,
)
from app.services.rules.base import EvaluationContext, prime_time_applies
from app.services.rules.catalog import RULE_CATALOG, parse_rule_config
from app.services.rules.registry import FacilityRuleSet, RuleEntry
from app.services.slots import SlotGrid

# ── Clock ──────────────────────────────────────────────────────────────────

TZ = ZoneInfo("America/New_York")
NOW = datetime(2026, 3, 11, 9, 0, tzinfo=TZ)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)      # Thursday
SATURDAY = date(2026, 3, 14)
SUNDAY = date(2026, 3, 15)
NEXT_MONDAY = date(2026, 3, 16)

# ── Facility ───────────────────────────────────────────────────────────────

FACILITY_ID = "club-1"
OTHER_FACILITY_ID = "club-2"

MOCK_POLICY = FacilityPolicy(
    facility_id=FACILITY_ID,
    timezone="America/New_York",
    day_start_hour=6,
    day_end_hour=22,
    slot_granularity_minutes=15,
)

MOCK_GRID = SlotGrid.for_policy(MOCK_POLICY)

# ── Courts ─────────────────────────────────────────────────────────────────

# Weekday evenings 17:00-20:00
EVENING_PRIME_TIME = [
    PrimeTimeWindow(day_of_week=d, start=time(17, 0), end=time(20, 0)) for d in range(5)
]


def make_court(court_id: str, **overrides: Any) -> Court:
    """Build a court at the mock facility; pass keyword overrides for any field."""
    defaults: dict[str, Any] = dict(
        id=court_id,
        facility_id=FACILITY_ID,
        name=court_id.replace("-", " ").title(),
        type=CourtType.TENNIS,
        status=CourtStatus.AVAILABLE,
    )
    defaults.update(overrides)
    return Court(**defaults)


MOCK_COURT_1 = make_court("court-1", prime_time_windows=EVENING_PRIME_TIME)
MOCK_COURT_2 = make_court("court-2")

# Court 3 splits into two pickleball courts
MOCK_COURT_3 = make_court("court-3", type=CourtType.DUAL, child_court_ids=["court-3a", "court-3b"])
MOCK_COURT_3A = make_court("court-3a", type=CourtType.PICKLEBALL, parent_court_id="court-3")
MOCK_COURT_3B = make_court("court-3b", type=CourtType.PICKLEBALL, parent_court_id="court-3")

MOCK_COURT_CLOSED = make_court("court-9", status=CourtStatus.MAINTENANCE)

MOCK_COURTS = [
    MOCK_COURT_1,
    MOCK_COURT_2,
    MOCK_COURT_3,
    MOCK_COURT_3A,
    MOCK_COURT_3B,
    MOCK_COURT_CLOSED,
]

# ── Bookings ───────────────────────────────────────────────────────────────

_booking_ids = count(1)


def make_booking(
    start: time = time(10, 0),
    minutes: int = 60,
    *,
    court_id: str = "court-1",
    user_id: str = "alice",
    day: date = TOMORROW,
    status: BookingStatus = BookingStatus.CONFIRMED,
    is_prime_time: bool = False,
    booking_id: str | None = None,
    grid: SlotGrid = MOCK_GRID,
    **overrides: Any,
) -> Booking:
    """Booking expressed in wall-clock terms and converted to slots on *grid*."""
    slots = grid.slots_covering(start, minutes)
    return Booking(
        id=booking_id or f"bk-{next(_booking_ids)}",
        court_id=court_id,
        facility_id=FACILITY_ID,
        user_id=user_id,
        booking_date=day,
        start_slot_index=slots.start,
        slot_count=len(slots),
        status=status,
        is_prime_time=is_prime_time,
        created_at=NOW - timedelta(days=1),
        **overrides,
    )


def make_request(**overrides: Any) -> BookingRequest:
    """Tomorrow 10:00-11:00 on court-1 for alice unless overridden."""
    defaults: dict[str, Any] = dict(
        user_id="alice",
        court_id="court-1",
        facility_id=FACILITY_ID,
        booking_date=TOMORROW,
        start_time=time(10, 0),
        duration_minutes=60,
    )
    defaults.update(overrides)
    return BookingRequest(**defaults)


# ── Rules ──────────────────────────────────────────────────────────────────


def make_rule_set(
    rules: dict[str, dict[str, Any] | None] | None = None,
    *,
    policy: FacilityPolicy = MOCK_POLICY,
    disabled: tuple[str, ...] = (),
) -> FacilityRuleSet:
    """FacilityRuleSet with the given code -> raw config rows."""
    entries = {
        code: RuleEntry(
            spec=RULE_CATALOG[code],
            enabled=code not in disabled,
            config=parse_rule_config(code, raw),
        )
        for code, raw in (rules or {}).items()
    }
    return FacilityRuleSet(facility_id=policy.facility_id, policy=policy, entries=entries)


def make_context(
    request: BookingRequest | None = None,
    *,
    court: Court = MOCK_COURT_1,
    policy: FacilityPolicy = MOCK_POLICY,
    now: datetime = NOW,
    **history: Any,
) -> EvaluationContext:
    """EvaluationContext for calling evaluators directly."""
    request = request or make_request(court_id=court.id)
    grid = SlotGrid.for_policy(policy)
    slots = grid.slots_covering(request.start_time, request.duration_minutes)
    span = grid.span_minutes(slots.start, len(slots))
    return EvaluationContext(
        request=request,
        court=court,
        policy=policy,
        grid=grid,
        now=now.astimezone(TZ),
        slots=slots,
        is_prime_time=prime_time_applies(court, request.booking_date, *span),
        **history,
    )
