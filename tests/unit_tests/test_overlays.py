"""Tests for the peak-hour, weekend and admin policy overlays."""

from datetime import time, timedelta

from app.models import AdminRestrictions, PeakHoursPolicy, TimeRange, WeekendPolicy
from app.services.rules.overlays import (
    ADMIN_POLICY,
    PEAK_HOURS,
    WEEKEND_POLICY,
    admin_exempt,
    admin_notice_cutoff,
    admin_overlay,
    peak_applies,
    peak_hours_overlay,
    weekend_applies,
    weekend_overlay,
)
from tests.mocks.models import (
    MOCK_POLICY,
    SATURDAY,
    SUNDAY,
    TODAY,
    TOMORROW,
    make_booking,
    make_context,
    make_request,
)

PEAK_POLICY = MOCK_POLICY.model_copy(update={
    "peak_hours": PeakHoursPolicy(
        enabled=True,
        apply_to_admins=False,
        time_slots={"thursday": [TimeRange(start=time(17), end=time(20))]},
        max_bookings_per_week=1,
        max_duration_hours=1.5,
        advance_booking_days=-1,
    ),
})

WEEKEND_POLICY_ON = MOCK_POLICY.model_copy(update={
    "weekend_policy": WeekendPolicy(
        enabled=True, max_bookings_per_weekend=1, max_duration_hours=2, advance_booking_days=7,
    ),
})

ADMIN_EXEMPT_POLICY = MOCK_POLICY.model_copy(update={
    "restrictions_apply_to_admins": False,
    "admin_restrictions": AdminRestrictions(
        max_bookings_per_week=1, max_duration_hours=3, cancellation_notice_hours=24,
    ),
})


def _span(request):
    grid_start = request.start_time.hour * 60 + request.start_time.minute
    return grid_start, grid_start + request.duration_minutes


# ── Applicability ──────────────────────────────────────────────────────────


class TestApplicability:
    def test_peak_applies_on_configured_day(self):
        request = make_request(start_time=time(18))
        assert peak_applies(request, PEAK_POLICY, _span(request))

    def test_peak_ignores_other_hours_and_days(self):
        morning = make_request()
        assert not peak_applies(morning, PEAK_POLICY, _span(morning))
        friday = make_request(start_time=time(18), booking_date=TOMORROW + timedelta(days=1))
        assert not peak_applies(friday, PEAK_POLICY, _span(friday))

    def test_peak_skips_admins_when_configured(self):
        request = make_request(start_time=time(18), is_admin=True)
        assert not peak_applies(request, PEAK_POLICY, _span(request))

    def test_peak_disabled(self):
        request = make_request(start_time=time(18))
        assert not peak_applies(request, MOCK_POLICY, _span(request))

    def test_weekend_applies(self):
        assert weekend_applies(make_request(booking_date=SATURDAY), WEEKEND_POLICY_ON)
        assert weekend_applies(make_request(booking_date=SUNDAY), WEEKEND_POLICY_ON)
        assert not weekend_applies(make_request(), WEEKEND_POLICY_ON)
        assert not weekend_applies(make_request(booking_date=SATURDAY), MOCK_POLICY)

    def test_admin_exempt(self):
        assert admin_exempt(True, ADMIN_EXEMPT_POLICY)
        assert not admin_exempt(False, ADMIN_EXEMPT_POLICY)
        assert not admin_exempt(True, MOCK_POLICY)


# ── Peak hours ─────────────────────────────────────────────────────────────


class TestPeakHoursOverlay:
    def test_weekly_peak_cap(self):
        earlier = make_booking(time(18), day=TODAY - timedelta(days=7) + timedelta(days=1))
        this_week = make_booking(time(17, 30), day=TOMORROW, court_id="court-2")
        ctx = make_context(
            make_request(start_time=time(19)), policy=PEAK_POLICY,
            user_bookings=[earlier, this_week],
        )
        violations = peak_hours_overlay(ctx)
        assert [v.rule_code for v in violations] == [PEAK_HOURS]
        assert violations[0].details["limit"] == "max_bookings"
        assert violations[0].details["count"] == 1

    def test_off_peak_bookings_not_counted(self):
        ctx = make_context(
            make_request(start_time=time(18)), policy=PEAK_POLICY,
            user_bookings=[make_booking(time(8))],
        )
        assert peak_hours_overlay(ctx) == []

    def test_every_failed_cap_reported(self):
        ctx = make_context(
            make_request(start_time=time(18), duration_minutes=120), policy=PEAK_POLICY,
            user_bookings=[make_booking(time(17), court_id="court-2")],
        )
        limits = [v.details["limit"] for v in peak_hours_overlay(ctx)]
        assert limits == ["max_bookings", "max_duration_hours"]


# ── Weekend ────────────────────────────────────────────────────────────────


class TestWeekendOverlay:
    def test_one_booking_per_weekend(self):
        ctx = make_context(
            make_request(booking_date=SATURDAY), policy=WEEKEND_POLICY_ON,
            user_bookings=[make_booking(day=SUNDAY)],
        )
        violations = weekend_overlay(ctx)
        assert [v.rule_code for v in violations] == [WEEKEND_POLICY]
        assert violations[0].details["limit"] == "max_bookings"

    def test_advance_days(self):
        far = SATURDAY + timedelta(days=7)
        ctx = make_context(make_request(booking_date=far), policy=WEEKEND_POLICY_ON)
        violations = weekend_overlay(ctx)
        assert [v.details["limit"] for v in violations] == ["advance_booking_days"]

    def test_weekday_bookings_not_counted(self):
        ctx = make_context(
            make_request(booking_date=SATURDAY), policy=WEEKEND_POLICY_ON,
            user_bookings=[make_booking(day=TOMORROW)],
        )
        assert weekend_overlay(ctx) == []


# ── Admin ──────────────────────────────────────────────────────────────────


class TestAdminOverlay:
    def test_weekly_admin_cap(self):
        ctx = make_context(
            make_request(is_admin=True), policy=ADMIN_EXEMPT_POLICY,
            user_bookings=[make_booking(time(15), day=SATURDAY)],
        )
        violations = admin_overlay(ctx)
        assert [v.rule_code for v in violations] == [ADMIN_POLICY]

    def test_unlimited_caps(self):
        policy = MOCK_POLICY.model_copy(update={"restrictions_apply_to_admins": False})
        ctx = make_context(
            make_request(is_admin=True, duration_minutes=600), policy=policy,
            user_bookings=[make_booking(time(h)) for h in range(6, 12)],
        )
        assert admin_overlay(ctx) == []

    def test_notice_cutoff(self):
        assert admin_notice_cutoff(ADMIN_EXEMPT_POLICY) == timedelta(hours=24)
        assert admin_notice_cutoff(MOCK_POLICY) is None
