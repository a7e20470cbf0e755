"""
Facility policy overlays: peak hours, weekends, and admin caps.

Overlays are stricter cap sets layered on top of the rule catalog. They
come from the facility policy rather than from rule rows, and each reports
under its own code:

  PEAK-HOURS      request touches a configured peak range for its weekday
  WEEKEND-POLICY  request falls on a Saturday or Sunday
  ADMIN-POLICY    admin request at a facility whose base rules skip admins

Weekly and weekend counts are taken over the week (Sunday-Saturday) or
weekend that contains the requested date. Every cap accepts -1 for
unlimited.
"""

from __future__ import annotations

from datetime import date, timedelta

from app.models import Booking, BookingRequest, FacilityPolicy, RuleViolation
from app.services.rules.base import (
    EvaluationContext,
    counted,
    in_dates,
    intersects_ranges,
    violation,
)
from app.services.rules.catalog import is_unlimited
from app.services.windows import (
    WEEKDAY_NAMES,
    WindowType,
    is_weekend,
    week_window,
    weekend_window,
)

PEAK_HOURS = "PEAK-HOURS"
WEEKEND_POLICY = "WEEKEND-POLICY"
ADMIN_POLICY = "ADMIN-POLICY"


# ── Applicability ─────────────────────────────────────────────────────────


def admin_exempt(is_admin: bool, policy: FacilityPolicy) -> bool:
    """Admin requests skip the rule catalog unless restrictions apply to admins."""
    return is_admin and not policy.restrictions_apply_to_admins


def peak_applies(request: BookingRequest, policy: FacilityPolicy, span: tuple[int, int]) -> bool:
    peak = policy.peak_hours
    if not peak.enabled or (request.is_admin and not peak.apply_to_admins):
        return False
    ranges = peak.time_slots.get(WEEKDAY_NAMES[request.booking_date.weekday()], [])
    return intersects_ranges(*span, ranges)


def weekend_applies(request: BookingRequest, policy: FacilityPolicy) -> bool:
    weekend = policy.weekend_policy
    if not weekend.enabled or (request.is_admin and not weekend.apply_to_admins):
        return False
    return is_weekend(request.booking_date)


# ── Shared caps ───────────────────────────────────────────────────────────


def _cap_checks(
    code: str,
    label: str,
    ctx: EvaluationContext,
    *,
    count: int,
    max_count: int,
    count_label: str,
    max_duration_hours: float,
    advance_booking_days: int,
) -> list[RuleViolation]:
    violations: list[RuleViolation] = []
    if not is_unlimited(max_count) and count >= max_count:
        violations.append(violation(
            code,
            f"{label}: limit of {max_count} bookings per {count_label} reached.",
            limit="max_bookings", count=count, max=max_count,
        ))
    if not is_unlimited(max_duration_hours) and ctx.requested_minutes > max_duration_hours * 60:
        violations.append(violation(
            code,
            f"{label}: reservations are limited to {max_duration_hours:g} hours.",
            limit="max_duration_hours",
            requested_minutes=ctx.requested_minutes, max=max_duration_hours,
        ))
    if not is_unlimited(advance_booking_days) and ctx.days_ahead > advance_booking_days:
        violations.append(violation(
            code,
            f"{label}: reservations open {advance_booking_days} days in advance.",
            limit="advance_booking_days", days_ahead=ctx.days_ahead, max=advance_booking_days,
        ))
    return violations


def _request_week(ctx: EvaluationContext) -> tuple[date, date]:
    return week_window(WindowType.CALENDAR_WEEK, ctx.request.booking_date)


# ── Overlays ──────────────────────────────────────────────────────────────


def peak_hours_overlay(ctx: EvaluationContext) -> list[RuleViolation]:
    peak = ctx.policy.peak_hours
    window = _request_week(ctx)

    def in_peak(b: Booking) -> bool:
        ranges = peak.time_slots.get(WEEKDAY_NAMES[b.booking_date.weekday()], [])
        return intersects_ranges(*ctx.booking_span(b), ranges)

    count = sum(
        1 for b in ctx.user_bookings
        if counted(b) and in_dates(b, window) and in_peak(b)
    )
    return _cap_checks(
        PEAK_HOURS, "Peak hours", ctx,
        count=count,
        max_count=peak.max_bookings_per_week,
        count_label="week",
        max_duration_hours=peak.max_duration_hours,
        advance_booking_days=peak.advance_booking_days,
    )


def weekend_overlay(ctx: EvaluationContext) -> list[RuleViolation]:
    weekend = ctx.policy.weekend_policy
    window = weekend_window(ctx.request.booking_date)
    count = sum(1 for b in ctx.user_bookings if counted(b) and in_dates(b, window))
    return _cap_checks(
        WEEKEND_POLICY, "Weekend", ctx,
        count=count,
        max_count=weekend.max_bookings_per_weekend,
        count_label="weekend",
        max_duration_hours=weekend.max_duration_hours,
        advance_booking_days=weekend.advance_booking_days,
    )


def admin_overlay(ctx: EvaluationContext) -> list[RuleViolation]:
    caps = ctx.policy.admin_restrictions
    window = _request_week(ctx)
    count = sum(1 for b in ctx.user_bookings if counted(b) and in_dates(b, window))
    return _cap_checks(
        ADMIN_POLICY, "Admin bookings", ctx,
        count=count,
        max_count=caps.max_bookings_per_week,
        count_label="week",
        max_duration_hours=caps.max_duration_hours,
        advance_booking_days=caps.advance_booking_days,
    )


def admin_notice_cutoff(policy: FacilityPolicy) -> timedelta | None:
    """Cancellation notice required of exempt admins, or None when unlimited."""
    hours = policy.admin_restrictions.cancellation_notice_hours
    return None if is_unlimited(hours) else timedelta(hours=hours)
