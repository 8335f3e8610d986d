"""
Unit tests for SubscriptionService.

Database interactions are NOT mocked.
"""

import pytest
from datetime import datetime, timezone

from packages.billing.models.domain.enums import PaymentProvider, ReplacementReason
from packages.billing.models.domain.subscription_info import VIRTUAL_SUBSCRIPTION_ID
from packages.billing.services.subscription_service import SubscriptionService
from tests.fixtures import SAMPLE_NOW, SAMPLE_USER_ID


@pytest.fixture
def subscription_service(store, frozen_clock):
    return SubscriptionService(store=store, clock=frozen_clock)


class TestSubscriptionInfo:
    async def test_user_without_subscription_gets_virtual_free_tier(
        self, subscription_service, plans
    ):
        info = await subscription_service.get_user_subscription_info(SAMPLE_USER_ID)

        assert info.is_virtual is True
        assert info.subscription.id == VIRTUAL_SUBSCRIPTION_ID
        assert info.subscription.user_id == SAMPLE_USER_ID
        assert info.subscription.plan_id == "free"
        assert info.subscription.payment_provider == PaymentProvider.NONE
        assert info.subscription.current_period_start == SAMPLE_NOW
        assert info.subscription.current_period_end == datetime(
            2027, 3, 10, 12, 0, tzinfo=timezone.utc
        )
        assert info.plan.id == "free"
        assert info.usage.limit_hours == 0.5
        assert [p.id for p in info.available_plans] == [
            "free",
            "basic_monthly",
            "pro_monthly",
        ]

    async def test_virtual_free_tier_without_catalog_row(self, subscription_service):
        info = await subscription_service.get_user_subscription_info(SAMPLE_USER_ID)

        assert info.is_virtual is True
        assert info.plan.name == "Free"
        assert info.plan.hours_per_month == 0.5
        assert info.available_plans == []

    async def test_paid_subscription(
        self, subscription_service, plans, make_subscription, store
    ):
        subscription = await make_subscription(plan_id="basic_monthly")
        await store.save_usage(SAMPLE_USER_ID, "2026-03", 2.5, SAMPLE_NOW)

        info = await subscription_service.get_user_subscription_info(SAMPLE_USER_ID)

        assert info.is_virtual is False
        assert info.subscription.id == subscription.id
        assert info.plan.name == "Basic"
        assert info.usage.used_hours == 2.5
        assert info.usage.limit_hours == 10.0

    async def test_missing_plan_degrades_to_free_tier(
        self, subscription_service, plans, make_subscription
    ):
        await make_subscription(plan_id="retired_plan")

        info = await subscription_service.get_user_subscription_info(SAMPLE_USER_ID)

        assert info.is_virtual is True
        assert info.plan.id == "free"

    async def test_days_until_renewal(
        self, subscription_service, plans, make_subscription
    ):
        await make_subscription(period_end=datetime(2026, 3, 30, 12, 0, tzinfo=timezone.utc))

        info = await subscription_service.get_user_subscription_info(SAMPLE_USER_ID)

        assert info.subscription.days_until_renewal(SAMPLE_NOW) == 20


class TestPlanCatalog:
    async def test_available_plans_cheapest_first(self, subscription_service, plans):
        available = await subscription_service.get_available_plans()
        assert [p.price_cents for p in available] == [0, 999, 1999]

    async def test_upgrades_for_free_tier_user(self, subscription_service, plans):
        upgrades = await subscription_service.get_plan_upgrades(SAMPLE_USER_ID)
        assert [p.id for p in upgrades] == ["basic_monthly", "pro_monthly"]

    async def test_upgrades_for_basic_user(
        self, subscription_service, plans, make_subscription
    ):
        await make_subscription(plan_id="basic_monthly")

        upgrades = await subscription_service.get_plan_upgrades(SAMPLE_USER_ID)

        assert [p.id for p in upgrades] == ["pro_monthly"]

    async def test_no_upgrades_from_top_plan(
        self, subscription_service, plans, make_subscription
    ):
        await make_subscription(plan_id="pro_monthly", provider_price_id="price_pro_monthly")

        assert await subscription_service.get_plan_upgrades(SAMPLE_USER_ID) == []


class TestHistory:
    async def test_history_newest_first(
        self, subscription_service, plans, make_subscription, store, frozen_clock
    ):
        first = await make_subscription(provider_subscription_id="sub_a")
        await store.save_to_history(first, ReplacementReason.PLAN_CHANGE)
        frozen_clock.advance(days=1)
        second = await make_subscription(provider_subscription_id="sub_b")
        await store.save_to_history(second, ReplacementReason.SUBSCRIPTION_CANCELLED)

        history = await subscription_service.get_history(SAMPLE_USER_ID)

        assert [h.original_subscription_id for h in history] == [second.id, first.id]
        assert history[0].replacement_reason == "subscription_cancelled"
