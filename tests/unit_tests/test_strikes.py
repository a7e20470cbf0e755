"""Tests for strike counting and lockout derivation."""

from datetime import timedelta

import pytest

from app.models import StrikeKind, StrikeRecord
from app.services.rules.catalog import StrikeLockout
from app.services.strikes import StrikeTracker
from tests.mocks.models import NOW


def _strikes(*days_ago: float) -> list[StrikeRecord]:
    return [
        StrikeRecord(
            user_id="alice", facility_id="club-1",
            timestamp=NOW - timedelta(days=d), kind=StrikeKind.LATE_CANCEL,
        )
        for d in days_ago
    ]


@pytest.fixture()
def tracker() -> StrikeTracker:
    return StrikeTracker(StrikeLockout(strike_threshold=3, strike_window_days=30, lockout_days=7))


class TestActiveStrikes:
    def test_counts_window(self, tracker: StrikeTracker):
        assert tracker.active_strikes(_strikes(45, 29, 2), NOW) == 2

    def test_window_boundary_inclusive(self, tracker: StrikeTracker):
        assert tracker.active_strikes(_strikes(30), NOW) == 1

    def test_future_strikes_ignored(self, tracker: StrikeTracker):
        assert tracker.active_strikes(_strikes(-1, 1), NOW) == 1


class TestLockout:
    def test_below_threshold(self, tracker: StrikeTracker):
        assert tracker.lockout_ends_at(_strikes(3, 1), NOW) is None

    def test_lockout_runs_from_triggering_strike(self, tracker: StrikeTracker):
        strikes = _strikes(20, 10, 2)
        assert tracker.triggering_strike(strikes, NOW) == NOW - timedelta(days=2)
        assert tracker.lockout_ends_at(strikes, NOW) == NOW + timedelta(days=5)
        assert tracker.is_locked_out(strikes, NOW)

    def test_lockout_expires(self, tracker: StrikeTracker):
        strikes = _strikes(20, 10, 8)
        assert tracker.lockout_ends_at(strikes, NOW) is None
        assert not tracker.is_locked_out(strikes, NOW)

    def test_most_recent_trigger_wins(self, tracker: StrikeTracker):
        strikes = _strikes(25, 20, 15, 1)
        assert tracker.triggering_strike(strikes, NOW) == NOW - timedelta(days=1)

    def test_unordered_history(self, tracker: StrikeTracker):
        strikes = _strikes(2, 20, 10)
        assert tracker.triggering_strike(strikes, NOW) == NOW - timedelta(days=2)

    def test_config_change_reinterprets_history(self):
        strikes = _strikes(20, 10, 2)
        stricter = StrikeTracker(StrikeLockout(strike_threshold=2, strike_window_days=30, lockout_days=14))
        lenient = StrikeTracker(StrikeLockout(strike_threshold=4, strike_window_days=30, lockout_days=7))
        assert stricter.lockout_ends_at(strikes, NOW) == NOW + timedelta(days=12)
        assert lenient.lockout_ends_at(strikes, NOW) is None

    def test_zero_length_lockout(self):
        tracker = StrikeTracker(StrikeLockout(strike_threshold=1, strike_window_days=30, lockout_days=0))
        assert tracker.lockout_ends_at(_strikes(0), NOW) is None

    def test_replay_at_earlier_instant(self, tracker: StrikeTracker):
        # Looking back from five days ago only two strikes had happened
        strikes = _strikes(20, 10, 2)
        assert tracker.lockout_ends_at(strikes, NOW - timedelta(days=5)) is None

    def test_unlimited_threshold_never_locks_out(self):
        tracker = StrikeTracker(StrikeLockout(strike_threshold=-1))
        strikes = _strikes(3, 2, 1, 0.5, 0)
        assert tracker.triggering_strike(strikes, NOW) is None
        assert tracker.lockout_ends_at(strikes, NOW) is None
        assert tracker.active_strikes(strikes, NOW) == 5
