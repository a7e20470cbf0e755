"""
Collaborator interfaces the engine reads from and writes through.

The engine owns no storage. Every read it needs (booking snapshots, court
topology, rule rows, blackouts, account and household history) and every
write the booking workflow performs goes through these protocols.
DatabaseProvider implements all of them on top of the SQLite layer in
app.db; tests swap in an in-memory implementation.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

from app import db
from app.models import (
    ActionLog,
    Blackout,
    Booking,
    BookingStatus,
    Court,
    FacilityPolicy,
    FacilityRuleConfig,
    StrikeRecord,
)


class BookingSnapshotProvider(Protocol):
    async def confirmed_bookings(self, court_id: str, booking_date: date) -> list[Booking]:
        """Confirmed bookings on one court for one date."""
        ...


class CourtTopologyProvider(Protocol):
    async def get_court(self, court_id: str) -> Court | None:
        """Court with its parent/children and status, or None if unknown."""
        ...


class RuleConfigProvider(Protocol):
    async def active_rules(self, facility_id: str) -> list[FacilityRuleConfig]:
        """Stored rule rows for a facility (enabled and disabled)."""
        ...

    async def facility_policy(self, facility_id: str) -> FacilityPolicy | None:
        ...


class HistoryProvider(Protocol):
    async def user_bookings(self, user_id: str, facility_id: str) -> list[Booking]:
        """Every booking the account holds at the facility, in any status."""
        ...

    async def household_bookings(self, household_id: str, facility_id: str) -> list[Booking]:
        """Bookings of every account in the household."""
        ...

    async def strike_history(self, user_id: str, facility_id: str) -> list[StrikeRecord]:
        ...

    async def action_history(self, user_id: str, facility_id: str) -> list[ActionLog]:
        ...

    async def blackouts(self, facility_id: str, booking_date: date) -> list[Blackout]:
        """Active blackouts at the facility that may touch *booking_date*."""
        ...


class BookingStore(Protocol):
    async def confirm_booking(self, booking: Booking) -> Booking:
        """Atomic check-then-insert; raises SlotTaken when the range is occupied."""
        ...

    async def get_booking(self, booking_id: str) -> Booking | None:
        ...

    async def set_booking_status(
        self,
        booking_id: str,
        status: BookingStatus,
        canceled_at: datetime | None = None,
    ) -> Booking | None:
        ...

    async def append_strike(self, record: StrikeRecord) -> None:
        ...

    async def append_action(self, action: ActionLog) -> None:
        ...


class HouseholdStore(Protocol):
    async def household_for_user(self, user_id: str, facility_id: str) -> str | None:
        ...

    async def find_household(self, facility_id: str, normalized_address: str) -> str | None:
        ...

    async def household_members(self, household_id: str) -> list[str]:
        ...

    async def join_household(
        self, facility_id: str, user_id: str, normalized_address: str,
    ) -> str:
        """Add the account to the address's household, creating it if needed."""
        ...


class EngineProvider(
    BookingSnapshotProvider,
    CourtTopologyProvider,
    RuleConfigProvider,
    HistoryProvider,
    BookingStore,
    HouseholdStore,
    Protocol,
):
    """Everything BookingEngine needs from the outside world."""


class DatabaseProvider:
    """EngineProvider backed by the module-level aiosqlite connection."""

    async def confirmed_bookings(self, court_id: str, booking_date: date) -> list[Booking]:
        return await db.list_bookings_for_court(
            court_id, booking_date, statuses=[BookingStatus.CONFIRMED],
        )

    async def get_court(self, court_id: str) -> Court | None:
        return await db.get_court(court_id)

    async def active_rules(self, facility_id: str) -> list[FacilityRuleConfig]:
        return await db.list_rule_configs(facility_id)

    async def facility_policy(self, facility_id: str) -> FacilityPolicy | None:
        return await db.get_facility_policy(facility_id)

    async def user_bookings(self, user_id: str, facility_id: str) -> list[Booking]:
        return await db.list_user_bookings(user_id, facility_id)

    async def household_bookings(self, household_id: str, facility_id: str) -> list[Booking]:
        return await db.list_household_bookings(household_id, facility_id)

    async def strike_history(self, user_id: str, facility_id: str) -> list[StrikeRecord]:
        return await db.list_strikes(user_id, facility_id)

    async def action_history(self, user_id: str, facility_id: str) -> list[ActionLog]:
        return await db.list_actions(user_id, facility_id)

    async def blackouts(self, facility_id: str, booking_date: date) -> list[Blackout]:
        return await db.list_blackouts(facility_id, booking_date)

    async def confirm_booking(self, booking: Booking) -> Booking:
        return await db.confirm_booking(booking)

    async def get_booking(self, booking_id: str) -> Booking | None:
        return await db.get_booking(booking_id)

    async def set_booking_status(
        self,
        booking_id: str,
        status: BookingStatus,
        canceled_at: datetime | None = None,
    ) -> Booking | None:
        return await db.set_booking_status(booking_id, status, canceled_at)

    async def append_strike(self, record: StrikeRecord) -> None:
        await db.add_strike(record)

    async def append_action(self, action: ActionLog) -> None:
        await db.add_action(action)

    async def household_for_user(self, user_id: str, facility_id: str) -> str | None:
        return await db.household_for_user(user_id, facility_id)

    async def find_household(self, facility_id: str, normalized_address: str) -> str | None:
        return await db.find_household(facility_id, normalized_address)

    async def household_members(self, household_id: str) -> list[str]:
        return await db.list_household_members(household_id)

    async def join_household(
        self, facility_id: str, user_id: str, normalized_address: str,
    ) -> str:
        return await db.join_household(facility_id, user_id, normalized_address)
