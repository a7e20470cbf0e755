"""
Conflict resolver – is a run of slots on a court physically free?

Occupancy for a court on a date is an integer bitset over the slot grid
(bit *i* set = slot *i* taken). The target court's effective occupancy is
its own bits OR'ed with those of its relatives:

  • a sub-court inherits its parent's bookings (the whole surface is taken);
  • a parent inherits the union of its children's bookings.

Siblings never block each other. Past slots are unavailable regardless of
bookings, and courts not in `available` status accept nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime

from app.errors import InvalidCourtTopology
from app.models import (
    AvailabilityResult,
    Booking,
    BookingStatus,
    Conflict,
    ConflictReason,
    Court,
    CourtStatus,
)
from app.services.slots import SlotGrid

logger = logging.getLogger(__name__)


def run_mask(start_index: int, slot_count: int) -> int:
    """Bitset with *slot_count* bits set from *start_index*."""
    return ((1 << slot_count) - 1) << start_index


def occupancy(bookings: Iterable[Booking]) -> int:
    """OR of all confirmed bookings' slot runs."""
    bits = 0
    for booking in bookings:
        if booking.status == BookingStatus.CONFIRMED:
            bits |= run_mask(booking.start_slot_index, booking.slot_count)
    return bits


def relative_court_ids(court: Court) -> list[str]:
    """Courts whose bookings block *court*: its parent, or its children."""
    if court.parent_court_id is not None:
        if court.child_court_ids:
            raise InvalidCourtTopology(
                f"court {court.id} is a sub-court and cannot have children",
                court_id=court.id,
            )
        return [court.parent_court_id]
    return list(court.child_court_ids)


class ConflictResolver:
    """Checks a candidate slot run against the occupancy of a court and its relatives."""

    def __init__(self, grid: SlotGrid) -> None:
        self._grid = grid

    def resolve(
        self,
        court: Court,
        booking_date: date,
        slots: range,
        bookings_by_court: Mapping[str, list[Booking]],
        now: datetime,
    ) -> AvailabilityResult:
        """
        Decide Free or Conflict for *slots* on *court*.

        *bookings_by_court* must hold the date's bookings for the court and
        every id returned by relative_court_ids(court); missing keys are
        treated as empty. *now* is facility-local.
        """
        start, count = slots.start, len(slots)

        def _conflict(reason: ConflictReason, booking_id: str | None = None) -> AvailabilityResult:
            return AvailabilityResult(
                free=False,
                conflict=Conflict(reason=reason, blocking_booking_id=booking_id),
                start_slot_index=start,
                slot_count=count,
            )

        if court.status != CourtStatus.AVAILABLE:
            return _conflict(ConflictReason.COURT_UNAVAILABLE)

        if self._is_past(booking_date, start, now):
            return _conflict(ConflictReason.PAST_SLOT)

        relevant = [court.id, *relative_court_ids(court)]
        candidates = [
            b
            for court_id in relevant
            for b in bookings_by_court.get(court_id, [])
            if b.status == BookingStatus.CONFIRMED and b.booking_date == booking_date
        ]

        overlap = occupancy(candidates) & run_mask(start, count)
        if not overlap:
            return AvailabilityResult(free=True, start_slot_index=start, slot_count=count)

        first = (overlap & -overlap).bit_length() - 1
        blocking = min(
            (b for b in candidates if b.start_slot_index <= first < b.end_slot_index),
            key=lambda b: (b.start_slot_index, b.id),
        )
        logger.debug(
            "Court %s slot %d on %s blocked by booking %s on court %s",
            court.id, first, booking_date, blocking.id, blocking.court_id,
        )
        return _conflict(ConflictReason.SLOT_CONFLICT, blocking.id)

    def _is_past(self, booking_date: date, start_index: int, now: datetime) -> bool:
        today = now.date()
        if booking_date != today:
            return booking_date < today
        return self._grid.slot_datetime(booking_date, start_index, now.tzinfo) < now
