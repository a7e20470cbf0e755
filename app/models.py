"""Pydantic models for the Court Booking engine and API."""

from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


# ── Enumerations ──────────────────────────────────────────────────────────


class CourtType(str, Enum):
    TENNIS = "tennis"
    PICKLEBALL = "pickleball"
    DUAL = "dual"


class CourtStatus(str, Enum):
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    CLOSED = "closed"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELED = "canceled"
    NO_SHOW = "no_show"
    COMPLETED = "completed"


# Statuses that hold a court and count as an "active" reservation
ACTIVE_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.PENDING})


class StrikeKind(str, Enum):
    LATE_CANCEL = "late_cancel"
    NO_SHOW = "no_show"


class ActionType(str, Enum):
    CREATE = "create"
    CANCEL = "cancel"


class RestrictionType(str, Enum):
    ACCOUNT = "account"
    ADDRESS = "address"


class ConflictReason(str, Enum):
    SLOT_CONFLICT = "SlotConflict"
    PAST_SLOT = "PastSlot"
    COURT_UNAVAILABLE = "CourtUnavailable"


# ── Courts ────────────────────────────────────────────────────────────────


class TimeRange(BaseModel):
    """Half-open time-of-day range [start, end)."""
    start: time = Field(..., description="Range start (inclusive)")
    end: time = Field(..., description="Range end (exclusive)")

    @model_validator(mode="after")
    def _check_order(self) -> "TimeRange":
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class PrimeTimeWindow(TimeRange):
    """A court's prime-time window on one weekday."""
    day_of_week: int = Field(..., ge=0, le=6, description="Day of week (0=Monday, 6=Sunday)")


class Court(BaseModel):
    """Bookable court, possibly one half of a splittable surface."""
    id: str = Field(..., description="Unique court identifier")
    facility_id: str = Field(..., description="Owning facility")
    name: str = Field("", description="Display name")
    type: CourtType = Field(CourtType.TENNIS, description="Sport the court is lined for")
    status: CourtStatus = Field(CourtStatus.AVAILABLE, description="Operational status")
    parent_court_id: Optional[str] = Field(None, description="Parent court when this is a split sub-court")
    child_court_ids: List[str] = Field(default_factory=list, description="Sub-courts produced by splitting")
    prime_time_windows: List[PrimeTimeWindow] = Field(default_factory=list, description="Prime-time windows")


# ── Bookings & history ────────────────────────────────────────────────────


class Booking(BaseModel):
    """A reservation, expressed on the facility's slot grid."""
    id: str = Field(..., description="Unique booking identifier")
    court_id: str = Field(..., description="Reserved court")
    facility_id: str = Field(..., description="Facility")
    user_id: str = Field(..., description="Booking account")
    booking_date: date = Field(..., description="Date of play")
    start_slot_index: int = Field(..., ge=0, description="First occupied slot")
    slot_count: int = Field(..., ge=1, description="Number of occupied slots")
    status: BookingStatus = Field(BookingStatus.CONFIRMED, description="Lifecycle status")
    is_prime_time: bool = Field(False, description="Whether the booking touched a prime-time window")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    canceled_at: Optional[datetime] = Field(None, description="Cancellation timestamp")

    @property
    def end_slot_index(self) -> int:
        return self.start_slot_index + self.slot_count

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class StrikeRecord(BaseModel):
    """Append-only penalty event."""
    user_id: str
    facility_id: str
    timestamp: datetime
    kind: StrikeKind
    booking_id: Optional[str] = None


class ActionLog(BaseModel):
    """One create/cancel action, for sliding-window throttling."""
    user_id: str
    facility_id: str
    timestamp: datetime
    action_type: ActionType


# ── Facility configuration ────────────────────────────────────────────────


class FacilityRuleConfig(BaseModel):
    """Raw stored rule row; `config` is validated per rule code at load time."""
    facility_id: str
    rule_code: str
    enabled: bool = True
    config: Dict[str, Any] = Field(default_factory=dict)


class AdminRestrictions(BaseModel):
    """Caps applied to admins when the base rules do not apply to them (-1 = unlimited)."""
    max_bookings_per_week: int = -1
    max_duration_hours: float = -1
    advance_booking_days: int = -1
    cancellation_notice_hours: float = -1


class PeakHoursPolicy(BaseModel):
    enabled: bool = False
    apply_to_admins: bool = True
    time_slots: Dict[str, List[TimeRange]] = Field(
        default_factory=dict, description="Weekday name (monday..sunday) -> peak ranges",
    )
    max_bookings_per_week: int = 2
    max_duration_hours: float = 1.5
    advance_booking_days: int = -1


class WeekendPolicy(BaseModel):
    enabled: bool = False
    apply_to_admins: bool = True
    max_bookings_per_weekend: int = 2
    max_duration_hours: float = 2
    advance_booking_days: int = 7


class MembershipTier(BaseModel):
    """
    Membership tier. A cap left as None falls back to the matching rule's
    own config; -1 means unlimited for members of the tier.
    """
    name: str = Field(..., min_length=1, description="Tier name as carried on booking requests")
    prime_time_eligible: bool = Field(True, description="Whether members may book prime time at all")
    max_active_reservations: Optional[int] = Field(None, description="Overrides ACC-001")
    max_reservations_per_week: Optional[int] = Field(None, description="Overrides ACC-002")
    max_minutes_per_week: Optional[int] = Field(None, description="Overrides ACC-003")
    advance_booking_days: Optional[int] = Field(None, description="Overrides ACC-005")
    prime_time_max_per_week: Optional[int] = Field(None, description="Overrides ACC-010")


class FacilityPolicy(BaseModel):
    """Facility-wide booking window and overlay policies."""
    facility_id: str
    timezone: str = "America/New_York"
    day_start_hour: int = Field(6, ge=0, le=23)
    day_end_hour: int = Field(21, ge=1, le=24)
    slot_granularity_minutes: int = Field(15, gt=0, le=60)
    restriction_type: RestrictionType = RestrictionType.ACCOUNT
    restrictions_apply_to_admins: bool = True
    admin_restrictions: AdminRestrictions = Field(default_factory=AdminRestrictions)
    peak_hours: PeakHoursPolicy = Field(default_factory=PeakHoursPolicy)
    weekend_policy: WeekendPolicy = Field(default_factory=WeekendPolicy)
    membership_tiers: List[MembershipTier] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_grid(self) -> "FacilityPolicy":
        if 60 % self.slot_granularity_minutes:
            raise ValueError("slot_granularity_minutes must divide 60")
        if self.day_start_hour >= self.day_end_hour:
            raise ValueError("day_start_hour must be before day_end_hour")
        return self

    def tier(self, name: Optional[str]) -> Optional[MembershipTier]:
        """The tier called *name* (case-insensitive), if the facility defines one."""
        if not name:
            return None
        wanted = name.lower()
        return next((t for t in self.membership_tiers if t.name.lower() == wanted), None)


class BlackoutType(str, Enum):
    MAINTENANCE = "maintenance"
    EVENT = "event"
    TOURNAMENT = "tournament"
    HOLIDAY = "holiday"
    WEATHER = "weather"
    CUSTOM = "custom"


class Recurrence(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class Blackout(BaseModel):
    """
    Period during which a court, or every court when court_id is None,
    cannot be booked. Times are facility-local wall-clock values.

    A recurring blackout repeats its start-to-end time of day on every day
    (daily) or on the same weekday (weekly) from its first date onwards.
    """
    id: Optional[str] = Field(None, description="Assigned on creation")
    facility_id: Optional[str] = Field(None, description="Facility (taken from the route when omitted)")
    court_id: Optional[str] = Field(None, description="Blocked court; None blocks the whole facility")
    blackout_type: BlackoutType = BlackoutType.MAINTENANCE
    title: str = Field("", description="Shown to players when visible")
    starts_at: datetime = Field(..., description="Local start (inclusive)")
    ends_at: datetime = Field(..., description="Local end (exclusive)")
    recurrence: Optional[Recurrence] = None
    visible: bool = Field(True, description="Hidden blackouts are reported as maintenance")

    @model_validator(mode="after")
    def _check_range(self) -> "Blackout":
        if self.starts_at.tzinfo is not None or self.ends_at.tzinfo is not None:
            raise ValueError("blackout times are facility-local and carry no offset")
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        if self.recurrence is not None and self.ends_at.date() != self.starts_at.date():
            raise ValueError("a recurring blackout must start and end on the same day")
        return self


# ── Requests & results ────────────────────────────────────────────────────


class BookingRequest(BaseModel):
    """Fully-formed booking request handed to the engine."""
    user_id: str = Field(..., description="Requesting account")
    court_id: str = Field(..., description="Requested court")
    facility_id: Optional[str] = Field(None, description="Facility (taken from the route when omitted)")
    booking_date: date = Field(..., description="Date of play")
    start_time: time = Field(..., description="Requested start (facility local time)")
    duration_minutes: int = Field(..., gt=0, description="Requested duration")
    household_id: Optional[str] = Field(None, description="Resolved household, if any")
    tier: Optional[str] = Field(None, description="Membership tier name")
    is_admin: bool = Field(False, description="Whether the account is a facility admin")


class RuleViolation(BaseModel):
    rule_code: str = Field(..., description="Violated rule code, e.g. ACC-005")
    message: str = Field(..., description="User-facing explanation")
    details: Dict[str, Any] = Field(default_factory=dict)


class Conflict(BaseModel):
    reason: ConflictReason
    blocking_booking_id: Optional[str] = None


class AvailabilityResult(BaseModel):
    free: bool
    conflict: Optional[Conflict] = None
    start_slot_index: int
    slot_count: int


class EvaluationResult(BaseModel):
    allowed: bool
    violations: List[RuleViolation] = Field(default_factory=list)
    is_prime_time: bool = False
    slot_count: int = Field(0, description="Slots the booking would occupy (duration rounded up)")
    skipped_rules: List[str] = Field(default_factory=list, description="Rules skipped by fail-open policy")


class CancellationResult(BaseModel):
    allowed: bool = True
    is_late_cancel: bool
    strike_will_be_issued: bool
    strike_count: int = Field(0, description="Strikes recorded if the cancellation goes ahead")
    minutes_before_start: int
    message: Optional[str] = None


class StrikeStatus(BaseModel):
    user_id: str
    facility_id: str
    active_strikes: int
    locked_out: bool
    lockout_ends_at: Optional[datetime] = None


# ── API payloads ──────────────────────────────────────────────────────────


class BookingOutcome(BaseModel):
    """Result of the full create-booking workflow."""
    status: Literal["confirmed", "conflict", "denied"]
    booking: Optional[Booking] = None
    conflict: Optional[Conflict] = None
    violations: List[RuleViolation] = Field(default_factory=list)


class HouseholdAssignment(BaseModel):
    household_id: Optional[str] = Field(None, description="Household joined, or None when refused")
    normalized_address: str
    members: int = Field(0, description="Member count after the assignment")
    violations: List[RuleViolation] = Field(default_factory=list)


class AvailabilityRequest(BaseModel):
    court_id: str
    booking_date: date
    start_time: time
    duration_minutes: int = Field(..., gt=0)


class CancelRequest(BaseModel):
    is_admin: bool = False
    dry_run: bool = Field(False, description="Only report what canceling would cost")


class HouseholdJoinRequest(BaseModel):
    user_id: str
    address: str = Field(..., min_length=1)


class RuleUpdate(BaseModel):
    enabled: bool = True
    config: Dict[str, Any] = Field(default_factory=dict)


class RuleSummary(BaseModel):
    code: str
    name: str
    category: str
    enabled: bool
    config: Dict[str, Any] = Field(default_factory=dict)


class FacilityRules(BaseModel):
    facility_id: str
    policy: FacilityPolicy
    rules: List[RuleSummary] = Field(default_factory=list)


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int


class CourtListResponse(BaseModel):
    items: List[Court]
    meta: PaginationMeta


class Error(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    retryable: bool = Field(False, description="Whether re-running the same request may succeed")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Health status: ok, or degraded when storage is unreachable")
    version: str = Field(..., description="Service version")
    environment: str = Field(..., description="Deployment environment")
    database: bool = Field(..., description="Whether the booking store answered")
    timestamp: datetime = Field(..., description="Current timestamp")
