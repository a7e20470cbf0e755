"""Tests for the conflict resolver and split-court propagation."""

from datetime import time, timedelta

import pytest

from app.errors import InvalidCourtTopology
from app.models import BookingStatus, ConflictReason
from app.services.conflicts import ConflictResolver, occupancy, relative_court_ids, run_mask
from tests.mocks.models import (
    MOCK_COURT_1,
    MOCK_COURT_3,
    MOCK_COURT_3A,
    MOCK_COURT_3B,
    MOCK_COURT_CLOSED,
    MOCK_GRID,
    NOW,
    TODAY,
    TOMORROW,
    make_booking,
    make_court,
)

resolver = ConflictResolver(MOCK_GRID)


def _slots(start: time, minutes: int) -> range:
    return MOCK_GRID.slots_covering(start, minutes)


# ── Bitset helpers ─────────────────────────────────────────────────────────


class TestBitsets:
    def test_run_mask(self):
        assert run_mask(0, 1) == 0b1
        assert run_mask(2, 3) == 0b11100

    def test_occupancy_skips_non_confirmed(self):
        bookings = [
            make_booking(time(6, 0), 30),
            make_booking(time(7, 0), 15, status=BookingStatus.CANCELED),
        ]
        assert occupancy(bookings) == 0b11

    def test_relative_court_ids(self):
        assert relative_court_ids(MOCK_COURT_3A) == ["court-3"]
        assert relative_court_ids(MOCK_COURT_3) == ["court-3a", "court-3b"]
        assert relative_court_ids(MOCK_COURT_1) == []

    def test_sub_court_with_children_rejected(self):
        court = make_court("bad", parent_court_id="court-3", child_court_ids=["x"])
        with pytest.raises(InvalidCourtTopology):
            relative_court_ids(court)


# ── Resolve ────────────────────────────────────────────────────────────────


class TestResolve:
    def test_free_on_empty_court(self):
        result = resolver.resolve(MOCK_COURT_1, TOMORROW, _slots(time(10), 60), {}, NOW)
        assert result.free is True
        assert result.conflict is None
        assert result.start_slot_index == 16
        assert result.slot_count == 4

    def test_same_court_overlap(self):
        existing = make_booking(time(10, 30), 60)
        result = resolver.resolve(
            MOCK_COURT_1, TOMORROW, _slots(time(10), 60), {"court-1": [existing]}, NOW,
        )
        assert result.free is False
        assert result.conflict.reason == ConflictReason.SLOT_CONFLICT
        assert result.conflict.blocking_booking_id == existing.id

    def test_back_to_back_is_free(self):
        before = make_booking(time(9), 60)
        after = make_booking(time(11), 60)
        result = resolver.resolve(
            MOCK_COURT_1, TOMORROW, _slots(time(10), 60), {"court-1": [before, after]}, NOW,
        )
        assert result.free is True

    def test_canceled_booking_does_not_block(self):
        canceled = make_booking(time(10), 60, status=BookingStatus.CANCELED)
        result = resolver.resolve(
            MOCK_COURT_1, TOMORROW, _slots(time(10), 60), {"court-1": [canceled]}, NOW,
        )
        assert result.free is True

    def test_other_dates_ignored(self):
        other_day = make_booking(time(10), 60, day=TOMORROW + timedelta(days=1))
        result = resolver.resolve(
            MOCK_COURT_1, TOMORROW, _slots(time(10), 60), {"court-1": [other_day]}, NOW,
        )
        assert result.free is True

    def test_earliest_starting_blocker_reported(self):
        later = make_booking(time(12), 30, booking_id="bk-later")
        earlier = make_booking(time(10, 15), 30, booking_id="bk-earlier")
        result = resolver.resolve(
            MOCK_COURT_1, TOMORROW, _slots(time(10), 180), {"court-1": [later, earlier]}, NOW,
        )
        assert result.conflict.blocking_booking_id == "bk-earlier"


class TestSplitCourts:
    def test_parent_booking_blocks_child(self):
        parent = make_booking(time(10), 60, court_id="court-3")
        result = resolver.resolve(
            MOCK_COURT_3A, TOMORROW, _slots(time(10, 30), 60),
            {"court-3a": [], "court-3": [parent]}, NOW,
        )
        assert result.free is False
        assert result.conflict.blocking_booking_id == parent.id

    def test_child_booking_blocks_parent(self):
        child = make_booking(time(10), 60, court_id="court-3b")
        result = resolver.resolve(
            MOCK_COURT_3, TOMORROW, _slots(time(10), 60),
            {"court-3": [], "court-3a": [], "court-3b": [child]}, NOW,
        )
        assert result.free is False
        assert result.conflict.blocking_booking_id == child.id

    def test_symmetry(self):
        """Parent blocks child exactly when child blocks parent."""
        parent = make_booking(time(10), 60, court_id="court-3")
        child = make_booking(time(10), 60, court_id="court-3a")
        slots = _slots(time(10), 60)
        child_view = resolver.resolve(MOCK_COURT_3A, TOMORROW, slots, {"court-3": [parent]}, NOW)
        parent_view = resolver.resolve(MOCK_COURT_3, TOMORROW, slots, {"court-3a": [child]}, NOW)
        assert child_view.free is parent_view.free is False

    def test_siblings_are_independent(self):
        sibling = make_booking(time(10), 60, court_id="court-3b")
        result = resolver.resolve(
            MOCK_COURT_3A, TOMORROW, _slots(time(10), 60),
            {"court-3a": [], "court-3": [], "court-3b": [sibling]}, NOW,
        )
        assert result.free is True

    def test_sibling_view_unaffected_by_other_child(self):
        child = make_booking(time(10), 60, court_id="court-3a")
        result = resolver.resolve(
            MOCK_COURT_3B, TOMORROW, _slots(time(10), 60), {"court-3a": [child]}, NOW,
        )
        assert result.free is True


class TestUnavailable:
    def test_past_slot_today(self):
        result = resolver.resolve(MOCK_COURT_1, TODAY, _slots(time(8), 60), {}, NOW)
        assert result.conflict.reason == ConflictReason.PAST_SLOT

    def test_past_date(self):
        result = resolver.resolve(
            MOCK_COURT_1, TODAY - timedelta(days=1), _slots(time(18), 60), {}, NOW,
        )
        assert result.conflict.reason == ConflictReason.PAST_SLOT

    def test_slot_starting_now_is_bookable(self):
        result = resolver.resolve(MOCK_COURT_1, TODAY, _slots(time(9), 60), {}, NOW)
        assert result.free is True

    def test_court_not_available(self):
        result = resolver.resolve(MOCK_COURT_CLOSED, TOMORROW, _slots(time(10), 60), {}, NOW)
        assert result.conflict.reason == ConflictReason.COURT_UNAVAILABLE
        assert result.conflict.blocking_booking_id is None

    def test_unavailable_takes_precedence_over_past(self):
        result = resolver.resolve(MOCK_COURT_CLOSED, TODAY, _slots(time(7), 60), {}, NOW)
        assert result.conflict.reason == ConflictReason.COURT_UNAVAILABLE
