"""
Cancellation policy.

Decides whether a booking can be canceled now and what it costs. Regular
accounts fall under ACC-008: canceling inside the late-cancel cutoff
either issues strikes or is only flagged, depending on the penalty type.
Admins exempt from the base rules are instead held to the facility's admin
cancellation notice and never receive strikes.
"""

from __future__ import annotations

from datetime import datetime

from app.models import Booking, CancellationResult
from app.services.rules.base import elapsed, minutes_between
from app.services.rules.catalog import LateCancellation
from app.services.rules.overlays import admin_exempt, admin_notice_cutoff
from app.services.rules.registry import FacilityRuleSet
from app.services.slots import SlotGrid


def evaluate_cancellation(
    booking: Booking,
    rule_set: FacilityRuleSet,
    grid: SlotGrid,
    now: datetime,
    *,
    is_admin: bool = False,
) -> CancellationResult:
    """*now* must be facility-local."""
    start_at = grid.slot_datetime(booking.booking_date, booking.start_slot_index, now.tzinfo)
    minutes_before = minutes_between(now, start_at)

    def result(allowed: bool, message: str | None = None, *,
               late: bool = False, strikes: int = 0) -> CancellationResult:
        return CancellationResult(
            allowed=allowed,
            is_late_cancel=late,
            strike_will_be_issued=strikes > 0,
            strike_count=strikes,
            minutes_before_start=minutes_before,
            message=message,
        )

    if not booking.is_active:
        return result(False, f"Booking is already {booking.status.value}.")
    if minutes_before < 0:
        return result(False, "Booking has already started.")

    if admin_exempt(is_admin, rule_set.policy):
        cutoff = admin_notice_cutoff(rule_set.policy)
        if cutoff is not None and elapsed(now, start_at) < cutoff:
            return result(
                False,
                f"Admins must cancel at least {cutoff.total_seconds() / 3600:g} hours in advance.",
                late=True,
            )
        return result(True)

    entry = rule_set.get("ACC-008")
    if entry is None:
        return result(True)
    cfg: LateCancellation = entry.config  # type: ignore[assignment]

    if minutes_before >= cfg.late_cancel_cutoff_minutes:
        return result(True)
    if cfg.penalty_type == "strike":
        return result(
            True,
            f"Canceling within {cfg.late_cancel_cutoff_minutes} minutes of start "
            f"adds {cfg.penalty_value} strike(s) to your account.",
            late=True, strikes=max(cfg.penalty_value, 0),
        )
    return result(
        True,
        f"Late cancellation: less than {cfg.late_cancel_cutoff_minutes} minutes before start.",
        late=True,
    )
