"""
Booking engine – the decision service the booking workflow calls.

    engine = BookingEngine(DatabaseProvider(), clock=SystemClock())
    await engine.check_availability("court-3a", "club-1", day, time(10), 60)
    await engine.evaluate_request(request, "club-1")

check_availability and evaluate_request never write anything. The
mutating workflow methods (create_booking, cancel_booking, record_no_show,
assign_household) append to the booking, action and strike logs through
the provider; storage stays authoritative for double-booking.

The facility's rule set is cached in the RuleRegistry. History is read
fresh on every call and discarded with the EvaluationContext.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import date, datetime, time
from typing import Any, TypeVar
from uuid import uuid4

from app import config
from app.errors import (
    BookingEngineError,
    EvaluationCanceled,
    EvaluationUnavailable,
    InputError,
    Retryable,
    SlotTaken,
    UnknownBooking,
    UnknownCourt,
)
from app.models import (
    ActionLog,
    ActionType,
    AvailabilityResult,
    Booking,
    BookingOutcome,
    BookingRequest,
    BookingStatus,
    CancellationResult,
    Court,
    EvaluationResult,
    FacilityPolicy,
    HouseholdAssignment,
    RestrictionType,
    StrikeKind,
    StrikeRecord,
    StrikeStatus,
)
from app.services.cancellation import evaluate_cancellation
from app.services.clock import Clock, SystemClock, facility_zone
from app.services.conflicts import ConflictResolver, relative_court_ids
from app.services.households import normalize_address
from app.services.providers import EngineProvider
from app.services.rules.base import (
    ACTIONS,
    BLACKOUTS,
    COURT_BOOKINGS,
    HOUSEHOLD_BOOKINGS,
    STRIKES,
    USER_BOOKINGS,
    EvaluationContext,
    prime_time_applies,
    violation,
)
from app.services.rules.catalog import MaxMembersPerAddress, StrikeLockout, is_unlimited
from app.services.rules.pipeline import (
    CancelToken,
    Check,
    plan_checks,
    required_sources,
    run_checks,
)
from app.services.rules.registry import FacilityRuleSet, RuleRegistry
from app.services.slots import SlotGrid
from app.services.strikes import StrikeTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _read(what: str, call: Callable[[], Awaitable[T]], **details: Any) -> T:
    """Await a provider read, turning backend failures into EvaluationUnavailable."""
    try:
        return await call()
    except BookingEngineError:
        raise
    except Exception as exc:
        raise EvaluationUnavailable(f"could not read {what}", **details) from exc


class BookingEngine:
    """
    Eligibility and slot-conflict decisions for one deployment.

    Args:
        provider: Storage and history collaborator
        registry: Rule cache; built on *provider* when omitted
        clock: Source of "now"; the wall clock when omitted
        fail_open_rule_codes: Informational rules that are skipped rather
            than failing the evaluation when their history is unreadable
    """

    def __init__(
        self,
        provider: EngineProvider,
        *,
        registry: RuleRegistry | None = None,
        clock: Clock | None = None,
        fail_open_rule_codes: Iterable[str] | None = None,
    ) -> None:
        self._provider = provider
        self.registry = registry or RuleRegistry(provider)
        self._clock = clock or SystemClock()
        codes = config.FAIL_OPEN_RULE_CODES if fail_open_rule_codes is None else fail_open_rule_codes
        self._fail_open = frozenset(c.upper() for c in codes)

    # ── Shared lookups ─────────────────────────────────────────────────

    def _now(self, policy: FacilityPolicy) -> datetime:
        return self._clock.now(facility_zone(policy.timezone))

    async def _court(self, court_id: str, facility_id: str) -> Court:
        court = await _read(
            "court topology", lambda: self._provider.get_court(court_id), court_id=court_id,
        )
        if court is None or court.facility_id != facility_id:
            raise UnknownCourt(
                f"court {court_id} does not exist at facility {facility_id}",
                court_id=court_id, facility_id=facility_id,
            )
        return court

    async def _booking(self, booking_id: str, facility_id: str) -> Booking:
        booking = await _read(
            "booking", lambda: self._provider.get_booking(booking_id), booking_id=booking_id,
        )
        if booking is None or booking.facility_id != facility_id:
            raise UnknownBooking(
                f"booking {booking_id} does not exist at facility {facility_id}",
                booking_id=booking_id, facility_id=facility_id,
            )
        return booking

    async def _snapshot(self, court: Court, booking_date: date) -> dict[str, list[Booking]]:
        """Confirmed bookings for the court and every relative that can block it."""
        court_ids = [court.id, *relative_court_ids(court)]
        results = await _read(
            "booking snapshot",
            lambda: asyncio.gather(
                *(self._provider.confirmed_bookings(cid, booking_date) for cid in court_ids)
            ),
            court_id=court.id,
        )
        return dict(zip(court_ids, results))

    async def _court_bookings(self, court: Court, booking_date: date) -> list[Booking]:
        """Flat list of the date's confirmed bookings on the court and its relatives."""
        court_ids = [court.id, *relative_court_ids(court)]
        results = await asyncio.gather(
            *(self._provider.confirmed_bookings(cid, booking_date) for cid in court_ids)
        )
        return [b for bookings in results for b in bookings]

    # ── CheckAvailability ──────────────────────────────────────────────

    async def check_availability(
        self,
        court_id: str,
        facility_id: str,
        booking_date: date,
        start_time: time,
        duration_minutes: int,
    ) -> AvailabilityResult:
        """Free, or the first conflict, for a run of slots on one court."""
        rule_set = await self.registry.load(facility_id)
        grid = SlotGrid.for_policy(rule_set.policy)
        slots = grid.slots_covering(start_time, duration_minutes)
        court = await self._court(court_id, facility_id)
        now = self._now(rule_set.policy)
        snapshot = await self._snapshot(court, booking_date)
        return ConflictResolver(grid).resolve(court, booking_date, slots, snapshot, now)

    # ── EvaluateRequest ────────────────────────────────────────────────

    async def evaluate_request(
        self,
        request: BookingRequest,
        facility_id: str | None = None,
        *,
        cancel: CancelToken | None = None,
    ) -> EvaluationResult:
        """Allow, or Deny with every violated rule."""
        result, _, _ = await self._evaluate(request, facility_id, cancel)
        return result

    async def _evaluate(
        self,
        request: BookingRequest,
        facility_id: str | None,
        cancel: CancelToken | None,
    ) -> tuple[EvaluationResult, EvaluationContext, FacilityRuleSet]:
        facility_id = facility_id or request.facility_id
        if not facility_id:
            raise InputError("facility_id is required")
        request = request.model_copy(update={"facility_id": facility_id})

        rule_set = await self.registry.load(facility_id)
        policy = rule_set.policy
        grid = SlotGrid.for_policy(policy)
        slots = grid.slots_covering(request.start_time, request.duration_minutes)
        court = await self._court(request.court_id, facility_id)
        request = await self._resolve_household(request, policy)
        now = self._now(policy)

        span = grid.span_minutes(slots.start, len(slots))
        checks = plan_checks(rule_set, request, span)

        if cancel is not None and cancel.is_set():
            raise EvaluationCanceled("evaluation canceled before reading history")
        history, skipped = await self._read_history(request, court, checks)

        ctx = EvaluationContext(
            request=request,
            court=court,
            policy=policy,
            grid=grid,
            now=now,
            slots=slots,
            is_prime_time=prime_time_applies(court, request.booking_date, *span),
            **history,
        )
        violations = run_checks(checks, ctx, skip=skipped, cancel=cancel)
        if violations:
            logger.info(
                "Denied %s on court %s at %s %s: %s",
                request.user_id, court.id, request.booking_date,
                request.start_time.strftime("%H:%M"),
                ", ".join(sorted({v.rule_code for v in violations})),
            )

        result = EvaluationResult(
            allowed=not violations,
            violations=violations,
            is_prime_time=ctx.is_prime_time,
            slot_count=len(slots),
            skipped_rules=sorted(skipped),
        )
        return result, ctx, rule_set

    async def _resolve_household(self, request: BookingRequest, policy: FacilityPolicy) -> BookingRequest:
        if policy.restriction_type != RestrictionType.ADDRESS or request.household_id:
            return request
        household_id = await _read(
            "household",
            lambda: self._provider.household_for_user(request.user_id, request.facility_id),
            user_id=request.user_id,
        )
        if household_id is None:
            return request
        return request.model_copy(update={"household_id": household_id})

    async def _read_history(
        self,
        request: BookingRequest,
        court: Court,
        checks: list[Check],
    ) -> tuple[dict[str, list[Any]], set[str]]:
        """
        Fetch every history source the planned checks need, concurrently.

        A failed source fails the whole evaluation unless every check that
        needs it is informational and configured to fail open; those checks
        are then skipped and reported.
        """
        fid, uid = request.facility_id, request.user_id
        fetchers: dict[str, Callable[[], Awaitable[list[Any]]]] = {
            USER_BOOKINGS: lambda: self._provider.user_bookings(uid, fid),
            HOUSEHOLD_BOOKINGS: lambda: self._provider.household_bookings(request.household_id, fid),
            STRIKES: lambda: self._provider.strike_history(uid, fid),
            ACTIONS: lambda: self._provider.action_history(uid, fid),
            COURT_BOOKINGS: lambda: self._court_bookings(court, request.booking_date),
            BLACKOUTS: lambda: self._provider.blackouts(fid, request.booking_date),
        }
        sources = sorted(required_sources(checks))
        results = await asyncio.gather(
            *(fetchers[source]() for source in sources), return_exceptions=True,
        )

        history: dict[str, list[Any]] = {}
        skipped: set[str] = set()
        for source, result in zip(sources, results):
            if not isinstance(result, BaseException):
                history[source] = result
                continue
            if not isinstance(result, Exception):
                raise result
            dependents = [c for c in checks if source in c.needs]
            blocking = [
                c.code for c in dependents
                if c.safety_critical or c.code not in self._fail_open
            ]
            if blocking:
                raise EvaluationUnavailable(
                    f"could not read {source.replace('_', ' ')}",
                    source=source, rules=blocking,
                ) from result
            codes = [c.code for c in dependents]
            logger.warning("Skipping %s: %s unavailable (%s)", ", ".join(codes), source, result)
            skipped.update(codes)
            history[source] = []
        return history, skipped

    # ── Booking workflow ───────────────────────────────────────────────

    async def create_booking(
        self,
        request: BookingRequest,
        facility_id: str | None = None,
        *,
        cancel: CancelToken | None = None,
    ) -> BookingOutcome:
        """
        Availability pre-check, rule evaluation, then atomic confirmation.

        Raises Retryable when another request takes the slots between the
        pre-check and the insert.
        """
        facility_id = facility_id or request.facility_id
        if not facility_id:
            raise InputError("facility_id is required")
        availability = await self.check_availability(
            request.court_id, facility_id, request.booking_date,
            request.start_time, request.duration_minutes,
        )
        if not availability.free:
            return BookingOutcome(status="conflict", conflict=availability.conflict)

        result, ctx, _ = await self._evaluate(request, facility_id, cancel)
        if not result.allowed:
            return BookingOutcome(status="denied", violations=result.violations)

        booking = Booking(
            id=str(uuid4()),
            court_id=ctx.court.id,
            facility_id=facility_id,
            user_id=request.user_id,
            booking_date=request.booking_date,
            start_slot_index=ctx.slots.start,
            slot_count=len(ctx.slots),
            status=BookingStatus.CONFIRMED,
            is_prime_time=ctx.is_prime_time,
            created_at=ctx.now,
        )
        try:
            stored = await self._provider.confirm_booking(booking)
        except SlotTaken as exc:
            logger.warning(
                "Lost confirmation race on court %s %s slot %d (blocked by %s)",
                booking.court_id, booking.booking_date, booking.start_slot_index,
                exc.blocking_booking_id,
            )
            raise Retryable(
                "the requested slots were just taken; check availability again",
                court_id=booking.court_id,
                blocking_booking_id=exc.blocking_booking_id,
            ) from exc

        await self._provider.append_action(ActionLog(
            user_id=request.user_id, facility_id=facility_id,
            timestamp=ctx.now, action_type=ActionType.CREATE,
        ))
        logger.info("Booking %s confirmed for %s on court %s", stored.id, stored.user_id, stored.court_id)
        return BookingOutcome(status="confirmed", booking=stored)

    async def preview_cancellation(
        self, facility_id: str, booking_id: str, *, is_admin: bool = False,
    ) -> CancellationResult:
        booking = await self._booking(booking_id, facility_id)
        rule_set = await self.registry.load(facility_id)
        grid = SlotGrid.for_policy(rule_set.policy)
        return evaluate_cancellation(
            booking, rule_set, grid, self._now(rule_set.policy), is_admin=is_admin,
        )

    async def cancel_booking(
        self, facility_id: str, booking_id: str, *, is_admin: bool = False,
    ) -> CancellationResult:
        """Cancel a booking, logging the action and any late-cancel strikes."""
        booking = await self._booking(booking_id, facility_id)
        rule_set = await self.registry.load(facility_id)
        grid = SlotGrid.for_policy(rule_set.policy)
        now = self._now(rule_set.policy)
        result = evaluate_cancellation(booking, rule_set, grid, now, is_admin=is_admin)
        if not result.allowed:
            return result

        await self._provider.set_booking_status(booking.id, BookingStatus.CANCELED, now)
        await self._provider.append_action(ActionLog(
            user_id=booking.user_id, facility_id=facility_id,
            timestamp=now, action_type=ActionType.CANCEL,
        ))
        for _ in range(result.strike_count):
            await self._provider.append_strike(StrikeRecord(
                user_id=booking.user_id, facility_id=facility_id,
                timestamp=now, kind=StrikeKind.LATE_CANCEL, booking_id=booking.id,
            ))
        if result.strike_count:
            logger.info(
                "Issued %d late-cancel strike(s) to %s for booking %s",
                result.strike_count, booking.user_id, booking.id,
            )
        return result

    async def record_no_show(self, facility_id: str, booking_id: str) -> Booking:
        """Mark a booking as a no-show and record the strike."""
        booking = await self._booking(booking_id, facility_id)
        if booking.status != BookingStatus.CONFIRMED:
            raise InputError(
                f"booking {booking_id} is {booking.status.value}, not confirmed",
                booking_id=booking_id, status=booking.status.value,
            )
        rule_set = await self.registry.load(facility_id)
        now = self._now(rule_set.policy)
        updated = await self._provider.set_booking_status(booking.id, BookingStatus.NO_SHOW)
        await self._provider.append_strike(StrikeRecord(
            user_id=booking.user_id, facility_id=facility_id,
            timestamp=now, kind=StrikeKind.NO_SHOW, booking_id=booking.id,
        ))
        logger.info("Issued no-show strike to %s for booking %s", booking.user_id, booking.id)
        return updated or booking.model_copy(update={"status": BookingStatus.NO_SHOW})

    async def strike_status(self, facility_id: str, user_id: str) -> StrikeStatus:
        rule_set = await self.registry.load(facility_id)
        entry = rule_set.get("ACC-009")
        tracker = StrikeTracker(entry.config if entry else StrikeLockout())  # type: ignore[arg-type]
        strikes = await _read(
            "strike history",
            lambda: self._provider.strike_history(user_id, facility_id),
            user_id=user_id,
        )
        now = self._now(rule_set.policy)
        ends_at = tracker.lockout_ends_at(strikes, now) if entry else None
        return StrikeStatus(
            user_id=user_id,
            facility_id=facility_id,
            active_strikes=tracker.active_strikes(strikes, now),
            locked_out=ends_at is not None,
            lockout_ends_at=ends_at,
        )

    # ── Households ─────────────────────────────────────────────────────

    async def assign_household(
        self, facility_id: str, user_id: str, address: str,
    ) -> HouseholdAssignment:
        """
        Attach an account to the household registered at *address*.

        Refused with an HH-001 violation when the household is full.
        """
        normalized = normalize_address(address)
        if not normalized:
            raise InputError("address is required", user_id=user_id)

        rule_set = await self.registry.load(facility_id)
        household_id = await self._provider.find_household(facility_id, normalized)
        members = await self._provider.household_members(household_id) if household_id else []

        entry = rule_set.get("HH-001")
        if entry is not None and user_id not in members:
            cfg: MaxMembersPerAddress = entry.config  # type: ignore[assignment]
            if not is_unlimited(cfg.max_members) and len(members) >= cfg.max_members:
                return HouseholdAssignment(
                    normalized_address=normalized,
                    members=len(members),
                    violations=[violation(
                        "HH-001",
                        f"This address already has {len(members)} registered members "
                        f"(limit {cfg.max_members}).",
                        members=len(members), limit=cfg.max_members,
                    )],
                )

        household_id = await self._provider.join_household(facility_id, user_id, normalized)
        members = await self._provider.household_members(household_id)
        return HouseholdAssignment(
            household_id=household_id, normalized_address=normalized, members=len(members),
        )
