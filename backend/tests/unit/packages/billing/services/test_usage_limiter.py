"""
Unit tests for UsageLimiter.

Database interactions are NOT mocked; the clock is frozen.
"""

import pytest
from datetime import datetime, timezone

from fastapi import HTTPException

from common.core.exceptions import ValidationError
from packages.billing.models.domain.enums import SubscriptionStatus
from packages.billing.services.usage_limiter import (
    UsageLimiter,
    build_warning_message,
    month_bounds,
    year_month_of,
)
from tests.fixtures import SAMPLE_NOW, SAMPLE_USER_ID

ONE_MINUTE_IN_HOURS = 1 / 60


@pytest.fixture
def limiter(store, frozen_clock):
    return UsageLimiter(store=store, clock=frozen_clock)


class TestHelpers:
    def test_year_month_of(self):
        assert year_month_of(SAMPLE_NOW) == "2026-03"

    def test_month_bounds(self):
        start, end = month_bounds(SAMPLE_NOW)
        assert start == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert end == datetime(2026, 4, 1, tzinfo=timezone.utc)

    def test_month_bounds_december(self):
        start, end = month_bounds(datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc))
        assert start == datetime(2026, 12, 1, tzinfo=timezone.utc)
        assert end == datetime(2027, 1, 1, tzinfo=timezone.utc)


class TestWarningMessage:
    def test_no_warning_below_75_percent(self):
        assert build_warning_message(5.0, 10.0) is None

    def test_notice_from_75_percent(self):
        assert (
            build_warning_message(8.0, 10.0)
            == "You've used 8.0 hours of your 10.0 hour monthly quota (80.0%)."
        )

    def test_upgrade_nudge_from_90_percent(self):
        assert build_warning_message(9.5, 10.0) == (
            "You've used 95.0% of your monthly quota (9.5/10.0 hours). "
            "Consider upgrading your plan."
        )

    def test_exceeded(self):
        message = build_warning_message(11.0, 10.0)
        assert message.startswith("You have exceeded your monthly limit of 10.0 hours.")

    def test_exactly_at_limit_is_not_exceeded(self):
        message = build_warning_message(10.0, 10.0)
        assert "exceeded" not in message
        assert "100.0%" in message

    def test_zero_limit(self):
        assert build_warning_message(1.0, 0.0) is None


class TestCheckUsage:
    async def test_free_tier_without_subscription(self, limiter, plans):
        decision = await limiter.check_usage(SAMPLE_USER_ID, 0.5)

        assert decision.allowed is True
        assert decision.cap_hours == 0.5
        assert decision.plan_name == "Free"
        assert decision.used_hours == 0.0
        assert decision.grace_period_seconds == 60

    async def test_free_tier_denied_past_grace(self, limiter, plans):
        decision = await limiter.check_usage(SAMPLE_USER_ID, 0.5 + 61 / 3600)

        assert decision.allowed is False
        assert "monthly limit of 0.5 hours exceeded for Free plan" in decision.reason
        assert "grace period: 60 seconds" in decision.reason

    async def test_plan_cap_applies(self, limiter, plans, make_subscription, store):
        await make_subscription(plan_id="basic_monthly")
        await store.save_usage(SAMPLE_USER_ID, "2026-03", 9.0, SAMPLE_NOW)

        decision = await limiter.check_usage(SAMPLE_USER_ID, 1.0)

        assert decision.allowed is True
        assert decision.cap_hours == 10.0
        assert decision.plan_name == "Basic"
        assert decision.used_hours == 9.0

    async def test_exactly_one_grace_period_over_is_allowed(
        self, limiter, plans, make_subscription, store
    ):
        await make_subscription(plan_id="basic_monthly")
        await store.save_usage(SAMPLE_USER_ID, "2026-03", 10.0, SAMPLE_NOW)

        decision = await limiter.check_usage(SAMPLE_USER_ID, ONE_MINUTE_IN_HOURS)

        assert decision.allowed is True

    async def test_just_past_grace_period_is_denied(
        self, limiter, plans, make_subscription, store
    ):
        await make_subscription(plan_id="basic_monthly")
        await store.save_usage(SAMPLE_USER_ID, "2026-03", 10.0, SAMPLE_NOW)

        decision = await limiter.check_usage(
            SAMPLE_USER_ID, ONE_MINUTE_IN_HOURS + 1e-6
        )

        assert decision.allowed is False
        assert decision.reason == (
            "monthly limit of 10.0 hours exceeded for Basic plan "
            "(currently used: 10.00 hours, requested: 0.02 hours, "
            "grace period: 60 seconds)"
        )

    async def test_grace_period_override(self, limiter, plans, make_subscription, store):
        await make_subscription(plan_id="basic_monthly")
        await store.save_usage(SAMPLE_USER_ID, "2026-03", 10.0, SAMPLE_NOW)

        decision = await limiter.check_usage(
            SAMPLE_USER_ID, ONE_MINUTE_IN_HOURS, grace_period_seconds=0
        )

        assert decision.allowed is False
        assert decision.grace_period_seconds == 0

    async def test_small_request_well_under_cap(self, limiter, plans, make_subscription, store):
        await make_subscription(plan_id="basic_monthly")
        await store.save_usage(SAMPLE_USER_ID, "2026-03", 0.95, SAMPLE_NOW)

        decision = await limiter.check_usage(SAMPLE_USER_ID, 0.05)

        assert decision.allowed is True

    async def test_trialing_subscription_counts_as_current(
        self, limiter, plans, make_subscription
    ):
        await make_subscription(plan_id="pro_monthly", status=SubscriptionStatus.TRIALING)

        decision = await limiter.check_usage(SAMPLE_USER_ID, 20.0)

        assert decision.allowed is True
        assert decision.cap_hours == 25.0

    async def test_missing_plan_falls_back_to_free_tier(
        self, limiter, plans, make_subscription
    ):
        await make_subscription(plan_id="retired_plan")

        decision = await limiter.check_usage(SAMPLE_USER_ID, 1.0)

        assert decision.allowed is False
        assert decision.cap_hours == 0.5

    async def test_enforce_usage_raises_429(self, limiter, plans):
        with pytest.raises(HTTPException) as exc_info:
            await limiter.enforce_usage(SAMPLE_USER_ID, 2.0)

        assert exc_info.value.status_code == 429
        assert "exceeded" in exc_info.value.detail

    async def test_enforce_usage_allows(self, limiter, plans):
        decision = await limiter.enforce_usage(SAMPLE_USER_ID, 0.1)
        assert decision.allowed is True


class TestRecordUsage:
    async def test_record_creates_month(self, limiter, plans):
        record = await limiter.record_usage(SAMPLE_USER_ID, 1800)

        assert record.year_month == "2026-03"
        assert record.hours_used == pytest.approx(0.5)
        assert record.files_processed == 1
        assert record.last_processing_date == SAMPLE_NOW

    async def test_record_accumulates(self, limiter, plans, frozen_clock):
        await limiter.record_usage(SAMPLE_USER_ID, 1800)
        frozen_clock.advance(hours=1)
        record = await limiter.record_usage(SAMPLE_USER_ID, 900)

        assert record.hours_used == pytest.approx(0.75)
        assert record.files_processed == 2
        assert record.last_processing_date == frozen_clock.now()

    async def test_zero_duration_still_counts_a_file(self, limiter, plans):
        record = await limiter.record_usage(SAMPLE_USER_ID, 0)

        assert record.hours_used == 0.0
        assert record.files_processed == 1

    async def test_negative_duration_rejected(self, limiter, plans, store):
        with pytest.raises(ValidationError):
            await limiter.record_usage(SAMPLE_USER_ID, -1)

        assert await store.get_usage(SAMPLE_USER_ID, "2026-03") is None

    async def test_new_month_starts_empty(self, limiter, plans, frozen_clock):
        await limiter.record_usage(SAMPLE_USER_ID, 3600)
        frozen_clock.set(datetime(2026, 4, 1, 0, 0, tzinfo=timezone.utc))

        info = await limiter.get_usage_info(SAMPLE_USER_ID)
        assert info.used_hours == 0.0

        record = await limiter.record_usage(SAMPLE_USER_ID, 3600)
        assert record.year_month == "2026-04"
        assert record.hours_used == pytest.approx(1.0)


class TestUsageInfo:
    async def test_info_for_paid_plan(self, limiter, plans, make_subscription, store):
        await make_subscription(plan_id="basic_monthly")
        await store.save_usage(SAMPLE_USER_ID, "2026-03", 8.0, SAMPLE_NOW)

        info = await limiter.get_usage_info(SAMPLE_USER_ID)

        assert info.limit_hours == 10.0
        assert info.used_hours == 8.0
        assert info.remaining_hours == pytest.approx(2.0)
        assert info.percentage_used == pytest.approx(80.0)
        assert info.is_over_limit is False
        assert info.files_processed == 1
        assert info.plan_name == "Basic"
        assert info.billing_interval == "month"
        assert info.subscription_status == "active"
        assert info.period_start == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert info.period_end == datetime(2026, 4, 1, tzinfo=timezone.utc)
        assert info.warning_message is not None

    async def test_info_for_free_tier_over_limit(self, limiter, plans, store):
        await store.save_usage(SAMPLE_USER_ID, "2026-03", 0.75, SAMPLE_NOW)

        info = await limiter.get_usage_info(SAMPLE_USER_ID)

        assert info.plan_name == "Free"
        assert info.billing_interval == "free"
        assert info.remaining_hours == 0.0
        assert info.is_over_limit is True
        assert info.warning_message.startswith("You have exceeded")
