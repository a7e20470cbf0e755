"""
Household-category evaluators (HH-*).

These aggregate over every account registered at the requester's address
and only run when the facility restricts by address. HH-001 (members per
address) is enforced when an account joins a household, not here.
"""

from __future__ import annotations

from app.models import RuleViolation
from app.services.rules.base import (
    HOUSEHOLD_BOOKINGS,
    EvaluationContext,
    counted,
    in_dates,
    rule,
    upcoming_active,
    violation,
)
from app.services.rules.catalog import (
    HouseholdMaxActive,
    HouseholdPrimePerWeek,
    is_unlimited,
)
from app.services.windows import week_window


@rule("HH-002", needs=[HOUSEHOLD_BOOKINGS])
def household_max_active(ctx: EvaluationContext, cfg: HouseholdMaxActive) -> RuleViolation | None:
    if is_unlimited(cfg.max_active_household):
        return None
    active = upcoming_active(ctx.household_bookings, ctx.today)
    if len(active) < cfg.max_active_household:
        return None
    return violation(
        "HH-002",
        f"Your household already has {len(active)} active reservations "
        f"(limit {cfg.max_active_household}).",
        active=len(active), limit=cfg.max_active_household,
        household_id=ctx.request.household_id,
    )


@rule("HH-003", needs=[HOUSEHOLD_BOOKINGS])
def household_prime_per_week(ctx: EvaluationContext, cfg: HouseholdPrimePerWeek) -> RuleViolation | None:
    if not ctx.is_prime_time or is_unlimited(cfg.max_prime_per_week_household):
        return None
    window = week_window(cfg.window_type, ctx.today)
    count = sum(
        1 for b in ctx.household_bookings
        if b.is_prime_time and counted(b) and in_dates(b, window)
    )
    if count < cfg.max_prime_per_week_household:
        return None
    return violation(
        "HH-003",
        f"Your household has used its {cfg.max_prime_per_week_household} "
        f"prime-time bookings for this week.",
        count=count, limit=cfg.max_prime_per_week_household,
        household_id=ctx.request.household_id,
    )
