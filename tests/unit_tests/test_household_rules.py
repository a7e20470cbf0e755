"""Tests for the household rule evaluators (HH-*) and address normalization."""

from datetime import time, timedelta

import pytest

from app.models import BookingStatus
from app.services.households import addresses_match, normalize_address
from app.services.rules import household
from app.services.rules.catalog import (
    HouseholdMaxActive,
    HouseholdPrimePerWeek,
)
from tests.mocks.models import TODAY, make_booking, make_context, make_request


def _household_request(**overrides):
    return make_request(household_id="hh-1", **overrides)


class TestHouseholdMaxActive:
    cfg = HouseholdMaxActive(max_active_household=2)

    def test_household_cap_reached(self):
        ctx = make_context(_household_request(), household_bookings=[
            make_booking(user_id="alice"),
            make_booking(time(12), user_id="bob"),
        ])
        found = household.household_max_active(ctx, self.cfg)
        assert found.rule_code == "HH-002"
        assert found.details["household_id"] == "hh-1"

    def test_past_and_canceled_excluded(self):
        ctx = make_context(_household_request(), household_bookings=[
            make_booking(user_id="alice", day=TODAY - timedelta(days=2)),
            make_booking(user_id="bob", status=BookingStatus.CANCELED),
            make_booking(user_id="bob"),
        ])
        assert household.household_max_active(ctx, self.cfg) is None


class TestHouseholdPrimePerWeek:
    cfg = HouseholdPrimePerWeek(max_prime_per_week_household=1)

    def test_prime_cap_across_members(self):
        ctx = make_context(
            _household_request(start_time=time(18)),
            household_bookings=[make_booking(time(17), user_id="bob", is_prime_time=True)],
        )
        found = household.household_prime_per_week(ctx, self.cfg)
        assert found.rule_code == "HH-003"

    def test_off_peak_request(self):
        ctx = make_context(
            _household_request(),
            household_bookings=[make_booking(time(17), user_id="bob", is_prime_time=True)],
        )
        assert household.household_prime_per_week(ctx, self.cfg) is None


# ── Address normalization ──────────────────────────────────────────────────


class TestNormalizeAddress:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("12 Main Street", "12 main st"),
            ("  12   MAIN st. ", "12 main st"),
            ("400 North Avenue, Apt #3", "400 n ave apt 3"),
            ("9 Southwest Boulevard", "9 sw blvd"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_address(raw) == expected

    @pytest.mark.parametrize("raw", ["", None, "   "])
    def test_blank(self, raw):
        assert normalize_address(raw) == ""

    def test_addresses_match(self):
        assert addresses_match("12 Main Street, Apt 4", "12 main st apt. 4")
        assert not addresses_match("12 Main Street", "14 Main Street")
