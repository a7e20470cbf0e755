"""Tests for the slot grid."""

from datetime import date, time

import pytest

from app.errors import InvalidDuration, OutOfWindow
from app.services.slots import SlotGrid
from tests.mocks.models import TZ


@pytest.fixture()
def grid() -> SlotGrid:
    return SlotGrid(6, 21, 15)


class TestConversions:
    def test_slot_index(self, grid: SlotGrid):
        assert grid.slot_index(time(6, 0)) == 0
        assert grid.slot_index(time(10, 0)) == 16
        assert grid.slot_index(time(20, 45)) == 59

    def test_slot_index_floors_inside_slot(self, grid: SlotGrid):
        assert grid.slot_index(time(10, 7)) == 16

    def test_slot_time(self, grid: SlotGrid):
        assert grid.slot_time(16) == time(10, 0)
        assert grid.slot_time(59) == time(20, 45)

    def test_slots_per_day(self, grid: SlotGrid):
        assert grid.slots_per_day == 60
        assert SlotGrid(0, 24, 30).slots_per_day == 48

    @pytest.mark.parametrize("t", [time(5, 59), time(21, 0), time(23, 30)])
    def test_outside_window(self, grid: SlotGrid, t: time):
        with pytest.raises(OutOfWindow):
            grid.slot_index(t)

    def test_slot_time_out_of_range(self, grid: SlotGrid):
        with pytest.raises(OutOfWindow):
            grid.slot_time(60)

    def test_is_aligned(self, grid: SlotGrid):
        assert grid.is_aligned(time(10, 15))
        assert not grid.is_aligned(time(10, 10))
        assert not grid.is_aligned(time(10, 15, 30))

    @pytest.mark.parametrize("start,end,granularity", [(6, 21, 15), (0, 24, 5), (7, 22, 60), (6, 20, 20)])
    def test_every_slot_round_trips(self, start: int, end: int, granularity: int):
        grid = SlotGrid(start, end, granularity)
        seen = 0
        for index, t in grid.iter_slots():
            assert grid.slot_index(grid.slot_time(index)) == index
            assert grid.slot_time(grid.slot_index(t)) == t
            assert grid.is_aligned(t)
            seen += 1
        assert seen == grid.slots_per_day


class TestDurations:
    def test_exact_duration(self, grid: SlotGrid):
        assert grid.slots_for_duration(16, 45) == range(16, 19)

    def test_duration_rounds_up(self, grid: SlotGrid):
        assert grid.slots_for_duration(16, 50) == range(16, 20)
        assert grid.slots_for_duration(16, 1) == range(16, 17)

    @pytest.mark.parametrize("minutes", [0, -15])
    def test_non_positive_duration(self, grid: SlotGrid, minutes: int):
        with pytest.raises(InvalidDuration):
            grid.slots_for_duration(16, minutes)

    def test_duration_past_closing(self, grid: SlotGrid):
        assert grid.slots_for_duration(58, 30) == range(58, 60)
        with pytest.raises(InvalidDuration):
            grid.slots_for_duration(59, 30)

    def test_slots_covering_off_grid_start(self, grid: SlotGrid):
        # 10:05 for 30 minutes still needs to cover 10:35
        assert grid.slots_covering(time(10, 5), 30) == range(16, 19)

    def test_span_minutes(self, grid: SlotGrid):
        assert grid.span_minutes(16, 4) == (600, 660)
        assert grid.duration_minutes(3) == 45


class TestGridValidation:
    @pytest.mark.parametrize("granularity", [0, 7, 45])
    def test_granularity_must_divide_hour(self, granularity: int):
        with pytest.raises(ValueError):
            SlotGrid(6, 21, granularity)

    @pytest.mark.parametrize("start,end", [(21, 6), (6, 6), (6, 25)])
    def test_invalid_day_window(self, start: int, end: int):
        with pytest.raises(ValueError):
            SlotGrid(start, end, 15)


class TestDaySequence:
    def test_day_slots(self, grid: SlotGrid):
        slots = grid.day_slots(date(2026, 3, 12), TZ)
        assert len(slots) == 60
        assert slots[0].time() == time(6, 0)
        assert slots[-1].time() == time(20, 45)
        assert all(s.tzinfo is TZ for s in slots)

    def test_slot_datetime(self, grid: SlotGrid):
        dt = grid.slot_datetime(date(2026, 3, 12), 16, TZ)
        assert dt.hour == 10 and dt.minute == 0
        assert dt.utcoffset() is not None
