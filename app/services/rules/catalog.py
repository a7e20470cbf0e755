"""
Rule catalog – every booking-policy rule a facility can toggle.

Each rule code carries a typed config model. Stored configs are loose
JSON blobs; they are validated into these models once, when a facility's
rules are loaded, so evaluators only ever see typed values. Unknown keys
are ignored so older code keeps working against newer configs.

A cap of -1 (any negative value) means "unlimited" and skips the check.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.errors import RuleConfigError
from app.models import ActionType, BookingStatus
from app.services.windows import WEEKDAY_NAMES, WindowType

UNLIMITED = -1


def is_unlimited(cap: float | None) -> bool:
    return cap is None or cap < 0


class RuleCategory(str, Enum):
    ACCOUNT = "account"
    CANCELLATION = "cancellation"
    COURT = "court"
    HOUSEHOLD = "household"


class RuleConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


# ── Account ───────────────────────────────────────────────────────────────


class MaxActiveReservations(RuleConfig):
    max_active_reservations: int = 5
    count_states: list[BookingStatus] = Field(
        default_factory=lambda: [BookingStatus.CONFIRMED, BookingStatus.PENDING],
    )


class MaxReservationsPerWeek(RuleConfig):
    max_per_week: int = 10
    window_type: WindowType = WindowType.CALENDAR_WEEK
    include_canceled: bool = False


class MaxMinutesPerWeek(RuleConfig):
    max_minutes_per_week: int = 600
    window_type: WindowType = WindowType.CALENDAR_WEEK


class NoOverlappingReservations(RuleConfig):
    allow_overlap: bool = False
    overlap_grace_minutes: int = 0


class AdvanceBookingWindow(RuleConfig):
    max_days_ahead: int = 14


class MinimumLeadTime(RuleConfig):
    min_minutes_before_start: int = 60


class MaxPrimePerWeek(RuleConfig):
    max_prime_per_week: int = 3
    window_type: WindowType = WindowType.CALENDAR_WEEK


# ── Cancellation ──────────────────────────────────────────────────────────


class CancellationCooldown(RuleConfig):
    cooldown_minutes: int = 30
    only_if_within_minutes_of_start: int | None = None


class LateCancellation(RuleConfig):
    late_cancel_cutoff_minutes: int = 120
    penalty_type: Literal["strike", "warning"] = "strike"
    penalty_value: int = 1


class StrikeLockout(RuleConfig):
    strike_threshold: int = 3
    strike_window_days: int = Field(30, ge=1)
    lockout_days: int = Field(7, ge=0)


class ActionRateLimit(RuleConfig):
    max_actions: int = 10
    window_seconds: int = Field(60, gt=0)
    action_types: list[ActionType] = Field(
        default_factory=lambda: [ActionType.CREATE, ActionType.CANCEL],
    )


# ── Court ─────────────────────────────────────────────────────────────────


class PrimeTimeMaxDuration(RuleConfig):
    max_minutes_prime: int = 60


class PrimeTimeTierEligibility(RuleConfig):
    allowed_tiers: list[str] = Field(default_factory=list)
    allow_admin_override: bool = True


class SlotGridAlignment(RuleConfig):
    slot_minutes: int = Field(30, gt=0)
    min_duration_minutes: int = 30
    max_duration_minutes: int = 120


class BlackoutBlocks(RuleConfig):
    pass


class BufferTime(RuleConfig):
    buffer_before_minutes: int = Field(0, ge=0)
    buffer_after_minutes: int = Field(5, ge=0)


class CourtWeeklyCap(RuleConfig):
    max_per_week_per_account: int = 3
    window_type: WindowType = WindowType.CALENDAR_WEEK


class CourtReleaseTime(RuleConfig):
    release_time_local: time = time(7, 0)
    days_ahead: int = Field(3, ge=0)
    # Weekday name (monday..sunday) of the booking date -> release time that day
    weekday_release_times: dict[str, time] = Field(default_factory=dict)

    @field_validator("weekday_release_times")
    @classmethod
    def _known_weekdays(cls, value: dict[str, time]) -> dict[str, time]:
        normalized = {day.lower(): t for day, t in value.items()}
        unknown = sorted(set(normalized) - set(WEEKDAY_NAMES))
        if unknown:
            raise ValueError(f"unknown weekday(s): {', '.join(unknown)}")
        return normalized


# ── Household ─────────────────────────────────────────────────────────────


class MaxMembersPerAddress(RuleConfig):
    max_members: int = 6


class HouseholdMaxActive(RuleConfig):
    max_active_household: int = 4


class HouseholdPrimePerWeek(RuleConfig):
    max_prime_per_week_household: int = 3
    window_type: WindowType = WindowType.CALENDAR_WEEK


# ── Catalog ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RuleSpec:
    code: str
    name: str
    category: RuleCategory
    config_model: type[RuleConfig]
    # Never skipped when their inputs are unreadable
    safety_critical: bool = False
    # False for rules enforced on cancellation or registration instead
    booking_time: bool = True


RULE_CATALOG: dict[str, RuleSpec] = {
    spec.code: spec
    for spec in (
        RuleSpec("ACC-001", "Max Active Reservations", RuleCategory.ACCOUNT, MaxActiveReservations),
        RuleSpec("ACC-002", "Max Reservations Per Week", RuleCategory.ACCOUNT, MaxReservationsPerWeek),
        RuleSpec("ACC-003", "Max Hours Per Week", RuleCategory.ACCOUNT, MaxMinutesPerWeek),
        RuleSpec("ACC-004", "No Overlapping Reservations", RuleCategory.ACCOUNT, NoOverlappingReservations, True),
        RuleSpec("ACC-005", "Advance Booking Window", RuleCategory.ACCOUNT, AdvanceBookingWindow),
        RuleSpec("ACC-006", "Minimum Lead Time", RuleCategory.ACCOUNT, MinimumLeadTime),
        RuleSpec("ACC-007", "Cancellation Cooldown", RuleCategory.CANCELLATION, CancellationCooldown),
        RuleSpec("ACC-008", "Late Cancellation Policy", RuleCategory.CANCELLATION, LateCancellation, booking_time=False),
        RuleSpec("ACC-009", "No-Show / Strike System", RuleCategory.CANCELLATION, StrikeLockout, True),
        RuleSpec("ACC-010", "Prime-Time Per Week Limit", RuleCategory.ACCOUNT, MaxPrimePerWeek),
        RuleSpec("ACC-011", "Rate Limit Actions", RuleCategory.CANCELLATION, ActionRateLimit, True),
        RuleSpec("CRT-002", "Prime-Time Max Duration", RuleCategory.COURT, PrimeTimeMaxDuration),
        RuleSpec("CRT-003", "Prime-Time Eligibility by Tier", RuleCategory.COURT, PrimeTimeTierEligibility),
        RuleSpec("CRT-005", "Reservation Slot Grid", RuleCategory.COURT, SlotGridAlignment),
        RuleSpec("CRT-006", "Blackout Blocks", RuleCategory.COURT, BlackoutBlocks, True),
        RuleSpec("CRT-007", "Buffer Time Between Reservations", RuleCategory.COURT, BufferTime),
        RuleSpec("CRT-010", "Court-Specific Weekly Cap", RuleCategory.COURT, CourtWeeklyCap),
        RuleSpec("CRT-011", "Court Release Time", RuleCategory.COURT, CourtReleaseTime),
        RuleSpec("HH-001", "Max Members Per Address", RuleCategory.HOUSEHOLD, MaxMembersPerAddress, booking_time=False),
        RuleSpec("HH-002", "Household Max Active Reservations", RuleCategory.HOUSEHOLD, HouseholdMaxActive),
        RuleSpec("HH-003", "Household Prime-Time Cap", RuleCategory.HOUSEHOLD, HouseholdPrimePerWeek),
    )
}


def parse_rule_config(code: str, raw: dict[str, Any] | None) -> RuleConfig:
    """Validate a stored config blob against its rule's model."""
    spec = RULE_CATALOG[code]
    try:
        return spec.config_model.model_validate(raw or {})
    except ValidationError as exc:
        raise RuleConfigError(
            f"invalid config for {code}: {exc.error_count()} error(s)",
            rule_code=code,
            errors=[{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()],
        ) from exc
