"""
Court-category evaluators (CRT-*).

CRT-006 and CRT-007 look at the requested court together with its
split-court relatives: a blackout or a neighbouring booking on the parent
surface affects each half, and the other way round.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from app.models import Blackout, BookingStatus, Recurrence, RuleViolation
from app.services.conflicts import relative_court_ids
from app.services.rules.base import (
    BLACKOUTS,
    COURT_BOOKINGS,
    USER_BOOKINGS,
    EvaluationContext,
    counted,
    elapsed,
    in_dates,
    rule,
    violation,
)
from app.services.rules.catalog import (
    BlackoutBlocks,
    BufferTime,
    CourtReleaseTime,
    CourtWeeklyCap,
    PrimeTimeMaxDuration,
    PrimeTimeTierEligibility,
    SlotGridAlignment,
    is_unlimited,
)
from app.services.slots import minutes_of
from app.services.windows import WEEKDAY_NAMES, ranges_overlap, week_window


def blackout_covers(blackout: Blackout, day: date, start: int, end: int) -> bool:
    """Whether *blackout* touches the [start, end) minute span on *day*."""
    if blackout.recurrence is None:
        midnight = datetime.combine(day, time())
        return (
            blackout.starts_at < midnight + timedelta(minutes=end)
            and midnight + timedelta(minutes=start) < blackout.ends_at
        )
    first = blackout.starts_at.date()
    if day < first:
        return False
    if blackout.recurrence == Recurrence.WEEKLY and day.weekday() != first.weekday():
        return False
    return ranges_overlap(
        start, end, minutes_of(blackout.starts_at.time()), minutes_of(blackout.ends_at.time()),
    )


@rule("CRT-002")
def prime_time_max_duration(ctx: EvaluationContext, cfg: PrimeTimeMaxDuration) -> RuleViolation | None:
    if not ctx.is_prime_time or is_unlimited(cfg.max_minutes_prime):
        return None
    if ctx.requested_minutes <= cfg.max_minutes_prime:
        return None
    return violation(
        "CRT-002",
        f"Prime-time reservations are limited to {cfg.max_minutes_prime} minutes.",
        requested_minutes=ctx.requested_minutes, limit=cfg.max_minutes_prime,
    )


@rule("CRT-003")
def prime_time_tier_eligibility(ctx: EvaluationContext, cfg: PrimeTimeTierEligibility) -> RuleViolation | None:
    if not ctx.is_prime_time:
        return None
    if ctx.request.is_admin and cfg.allow_admin_override:
        return None
    tier = ctx.tier
    if tier is not None and not tier.prime_time_eligible:
        return violation(
            "CRT-003",
            f"Your membership tier ({tier.name}) is not eligible to book prime time.",
            tier=tier.name, allowed_tiers=list(cfg.allowed_tiers),
        )
    if not cfg.allowed_tiers:
        return None
    allowed = {t.lower() for t in cfg.allowed_tiers}
    name = (ctx.request.tier or "").lower()
    if name in allowed:
        return None
    return violation(
        "CRT-003",
        "Your membership tier cannot book prime time on this court.",
        tier=ctx.request.tier, allowed_tiers=list(cfg.allowed_tiers),
    )


@rule("CRT-005")
def slot_grid_alignment(ctx: EvaluationContext, cfg: SlotGridAlignment) -> RuleViolation | None:
    start = ctx.request.start_time
    offset = minutes_of(start) - ctx.policy.day_start_hour * 60
    if start.second or start.microsecond or offset % cfg.slot_minutes:
        return violation(
            "CRT-005",
            f"Reservations must start on a {cfg.slot_minutes}-minute boundary.",
            start_time=start.strftime("%H:%M"), slot_minutes=cfg.slot_minutes,
        )

    # Durations round up to whole grid slots before the bounds check
    duration = -(-ctx.request.duration_minutes // cfg.slot_minutes) * cfg.slot_minutes
    too_short = duration < cfg.min_duration_minutes
    too_long = not is_unlimited(cfg.max_duration_minutes) and duration > cfg.max_duration_minutes
    if not (too_short or too_long):
        return None
    return violation(
        "CRT-005",
        f"Reservations must last between {cfg.min_duration_minutes} and "
        f"{cfg.max_duration_minutes} minutes.",
        duration_minutes=duration,
        min_duration_minutes=cfg.min_duration_minutes,
        max_duration_minutes=cfg.max_duration_minutes,
    )


@rule("CRT-006", needs=[BLACKOUTS])
def blackout_blocks(ctx: EvaluationContext, cfg: BlackoutBlocks) -> RuleViolation | None:
    courts = {ctx.court.id, *relative_court_ids(ctx.court)}
    start, end = ctx.span
    for blackout in ctx.blackouts:
        if blackout.court_id is not None and blackout.court_id not in courts:
            continue
        if not blackout_covers(blackout, ctx.request.booking_date, start, end):
            continue
        reason = blackout.title if blackout.visible and blackout.title else "scheduled maintenance"
        return violation(
            "CRT-006",
            f"{ctx.court.name or ctx.court.id} is unavailable during this time ({reason}).",
            reason=reason,
            blackout_id=blackout.id,
            blackout_type=blackout.blackout_type.value,
            recurring=blackout.recurrence is not None,
        )
    return None


@rule("CRT-007", needs=[COURT_BOOKINGS])
def buffer_time(ctx: EvaluationContext, cfg: BufferTime) -> RuleViolation | None:
    before, after = cfg.buffer_before_minutes, cfg.buffer_after_minutes
    if not (before or after):
        return None
    start, end = ctx.span
    neighbours = sorted(
        (
            b for b in ctx.court_bookings
            if b.status == BookingStatus.CONFIRMED and b.booking_date == ctx.request.booking_date
        ),
        key=lambda b: (b.start_slot_index, b.id),
    )
    for b in neighbours:
        b_start, b_end = ctx.booking_span(b)
        if ranges_overlap(start, end, b_start, b_end):
            # Overlaps are slot conflicts, not buffer violations
            continue
        if after and b_end <= start < b_end + after:
            return violation(
                "CRT-007",
                f"A {after}-minute buffer is required after the previous booking.",
                booking_id=b.id, buffer_after_minutes=after, gap_minutes=start - b_end,
            )
        if before and b_start - before < end <= b_start:
            return violation(
                "CRT-007",
                f"A {before}-minute buffer is required before the next booking.",
                booking_id=b.id, buffer_before_minutes=before, gap_minutes=b_start - end,
            )
    return None


@rule("CRT-010", needs=[USER_BOOKINGS])
def court_weekly_cap(ctx: EvaluationContext, cfg: CourtWeeklyCap) -> RuleViolation | None:
    if is_unlimited(cfg.max_per_week_per_account):
        return None
    window = week_window(cfg.window_type, ctx.today)
    count = sum(
        1 for b in ctx.user_bookings
        if b.court_id == ctx.court.id and counted(b) and in_dates(b, window)
    )
    if count < cfg.max_per_week_per_account:
        return None
    return violation(
        "CRT-010",
        f"You can book {ctx.court.name or ctx.court.id} at most "
        f"{cfg.max_per_week_per_account} times per week.",
        count=count, limit=cfg.max_per_week_per_account, court_id=ctx.court.id,
    )


@rule("CRT-011")
def court_release_time(ctx: EvaluationContext, cfg: CourtReleaseTime) -> RuleViolation | None:
    weekday = WEEKDAY_NAMES[ctx.request.booking_date.weekday()]
    release_time = cfg.weekday_release_times.get(weekday, cfg.release_time_local)
    release_day = ctx.request.booking_date - timedelta(days=cfg.days_ahead)
    release_at = datetime.combine(release_day, release_time, tzinfo=ctx.now.tzinfo)
    if elapsed(release_at, ctx.now) >= timedelta(0):
        return None
    return violation(
        "CRT-011",
        f"This date opens for booking at {release_at.strftime('%Y-%m-%d %H:%M')}.",
        release_at=release_at.isoformat(),
    )
