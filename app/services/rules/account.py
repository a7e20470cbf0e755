"""
Account- and cancellation-category evaluators (ACC-*).

ACC-008 has no evaluator: late cancellation is priced when a booking is
canceled (see app.services.cancellation), never when one is made.

Caps marked as tier-aware take the requester's membership tier override
when the facility defines one for that tier.
"""

from __future__ import annotations

from datetime import timedelta

from app.models import BookingStatus, RuleViolation
from app.services.rate_limiter import SlidingWindowRateLimiter
from app.services.rules.base import (
    ACTIONS,
    STRIKES,
    USER_BOOKINGS,
    EvaluationContext,
    counted,
    elapsed,
    in_dates,
    minutes_between,
    rule,
    violation,
)
from app.services.rules.catalog import (
    ActionRateLimit,
    AdvanceBookingWindow,
    CancellationCooldown,
    MaxActiveReservations,
    MaxMinutesPerWeek,
    MaxPrimePerWeek,
    MaxReservationsPerWeek,
    MinimumLeadTime,
    NoOverlappingReservations,
    StrikeLockout,
    is_unlimited,
)
from app.services.strikes import StrikeTracker
from app.services.windows import ranges_overlap, week_window


@rule("ACC-001", needs=[USER_BOOKINGS])
def max_active_reservations(ctx: EvaluationContext, cfg: MaxActiveReservations) -> RuleViolation | None:
    limit = ctx.tier_cap("max_active_reservations", cfg.max_active_reservations)
    if is_unlimited(limit):
        return None
    states = set(cfg.count_states)
    active = [
        b for b in ctx.user_bookings
        if b.status in states and b.booking_date >= ctx.today
    ]
    if len(active) < limit:
        return None
    return violation(
        "ACC-001",
        f"You already have {len(active)} active reservations (limit {limit}).",
        active=len(active), limit=limit,
    )


@rule("ACC-002", needs=[USER_BOOKINGS])
def max_reservations_per_week(ctx: EvaluationContext, cfg: MaxReservationsPerWeek) -> RuleViolation | None:
    limit = ctx.tier_cap("max_reservations_per_week", cfg.max_per_week)
    if is_unlimited(limit):
        return None
    window = week_window(cfg.window_type, ctx.today)
    count = sum(
        1 for b in ctx.user_bookings
        if in_dates(b, window) and (cfg.include_canceled or counted(b))
    )
    if count < limit:
        return None
    return violation(
        "ACC-002",
        f"Weekly reservation limit of {limit} reached.",
        count=count, limit=limit,
        window_start=window[0].isoformat(), window_end=window[1].isoformat(),
    )


@rule("ACC-003", needs=[USER_BOOKINGS])
def max_minutes_per_week(ctx: EvaluationContext, cfg: MaxMinutesPerWeek) -> RuleViolation | None:
    limit = ctx.tier_cap("max_minutes_per_week", cfg.max_minutes_per_week)
    if is_unlimited(limit):
        return None
    window = week_window(cfg.window_type, ctx.today)
    booked = sum(
        ctx.booking_minutes(b) for b in ctx.user_bookings
        if counted(b) and in_dates(b, window)
    )
    if booked + ctx.requested_minutes <= limit:
        return None
    return violation(
        "ACC-003",
        f"This booking would bring your weekly court time to "
        f"{booked + ctx.requested_minutes} minutes (limit {limit}).",
        booked_minutes=booked, requested_minutes=ctx.requested_minutes,
        limit=limit,
    )


@rule("ACC-004", needs=[USER_BOOKINGS])
def no_overlapping_reservations(ctx: EvaluationContext, cfg: NoOverlappingReservations) -> RuleViolation | None:
    if cfg.allow_overlap:
        return None
    start, end = ctx.span
    for b in ctx.user_bookings:
        if not b.is_active or b.booking_date != ctx.request.booking_date:
            continue
        b_start, b_end = ctx.booking_span(b)
        if ranges_overlap(start, end, b_start, b_end, cfg.overlap_grace_minutes):
            return violation(
                "ACC-004",
                "You already have a reservation that overlaps this time.",
                booking_id=b.id, court_id=b.court_id,
            )
    return None


@rule("ACC-005")
def advance_booking_window(ctx: EvaluationContext, cfg: AdvanceBookingWindow) -> RuleViolation | None:
    limit = ctx.tier_cap("advance_booking_days", cfg.max_days_ahead)
    if is_unlimited(limit) or ctx.days_ahead <= limit:
        return None
    return violation(
        "ACC-005",
        f"Reservations open {limit} days in advance.",
        days_ahead=ctx.days_ahead, limit=limit,
    )


@rule("ACC-006")
def minimum_lead_time(ctx: EvaluationContext, cfg: MinimumLeadTime) -> RuleViolation | None:
    if is_unlimited(cfg.min_minutes_before_start):
        return None
    lead = minutes_between(ctx.now, ctx.start_at)
    if lead >= cfg.min_minutes_before_start:
        return None
    return violation(
        "ACC-006",
        f"Reservations must be made at least {cfg.min_minutes_before_start} minutes in advance.",
        minutes_before_start=lead, limit=cfg.min_minutes_before_start,
    )


@rule("ACC-007", needs=[USER_BOOKINGS])
def cancellation_cooldown(ctx: EvaluationContext, cfg: CancellationCooldown) -> RuleViolation | None:
    if is_unlimited(cfg.cooldown_minutes):
        return None
    cooldown = timedelta(minutes=cfg.cooldown_minutes)
    latest = None
    for b in ctx.user_bookings:
        if b.status != BookingStatus.CANCELED or b.canceled_at is None:
            continue
        if cfg.only_if_within_minutes_of_start is not None:
            notice = minutes_between(b.canceled_at, ctx.booking_start_at(b))
            if notice > cfg.only_if_within_minutes_of_start:
                continue
        if latest is None or b.canceled_at > latest:
            latest = b.canceled_at
    if latest is None or elapsed(latest, ctx.now) >= cooldown:
        return None
    return violation(
        "ACC-007",
        f"Please wait {cfg.cooldown_minutes} minutes after a cancellation before booking again.",
        available_at=(latest + cooldown).isoformat(),
    )


@rule("ACC-009", needs=[STRIKES])
def strike_lockout(ctx: EvaluationContext, cfg: StrikeLockout) -> RuleViolation | None:
    tracker = StrikeTracker(cfg)
    ends_at = tracker.lockout_ends_at(ctx.strikes, ctx.now)
    if ends_at is None:
        return None
    return violation(
        "ACC-009",
        f"Booking is suspended until {ends_at.strftime('%Y-%m-%d %H:%M')} "
        f"after {cfg.strike_threshold} strikes.",
        active_strikes=tracker.active_strikes(ctx.strikes, ctx.now),
        lockout_ends_at=ends_at.isoformat(),
    )


@rule("ACC-010", needs=[USER_BOOKINGS])
def max_prime_per_week(ctx: EvaluationContext, cfg: MaxPrimePerWeek) -> RuleViolation | None:
    limit = ctx.tier_cap("prime_time_max_per_week", cfg.max_prime_per_week)
    if not ctx.is_prime_time or is_unlimited(limit):
        return None
    window = week_window(cfg.window_type, ctx.today)
    count = sum(
        1 for b in ctx.user_bookings
        if b.is_prime_time and counted(b) and in_dates(b, window)
    )
    if count < limit:
        return None
    return violation(
        "ACC-010",
        f"Prime-time limit of {limit} bookings per week reached.",
        count=count, limit=limit,
    )


@rule("ACC-011", needs=[ACTIONS])
def action_rate_limit(ctx: EvaluationContext, cfg: ActionRateLimit) -> RuleViolation | None:
    limiter = SlidingWindowRateLimiter(cfg)
    if not limiter.is_limited(ctx.actions, ctx.now):
        return None
    return violation(
        "ACC-011",
        f"Too many booking changes; at most {cfg.max_actions} per "
        f"{cfg.window_seconds} seconds.",
        retry_after_seconds=limiter.retry_after(ctx.actions, ctx.now),
        limit=cfg.max_actions,
    )
