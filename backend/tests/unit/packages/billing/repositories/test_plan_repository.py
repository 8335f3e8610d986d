"""
Unit tests for PlanRepository and PaymentCustomerRepository.
"""

import pytest

from packages.billing.models.database.plan import PlanEntity
from packages.billing.repositories.customer_repository import PaymentCustomerRepository
from packages.billing.repositories.plan_repository import PlanRepository


@pytest.mark.asyncio
class TestPlanRepository:
    """Tests for PlanRepository."""

    async def test_get_by_id(self, test_db, plans):
        plan = await PlanRepository(test_db).get("basic_monthly")

        assert plan.name == "Basic"
        assert plan.hours_per_month == 10.0
        assert plan.price_formatted() == "$9.99"
        assert plan.is_free is False

    async def test_get_by_provider_price_id(self, test_db, plans):
        repo = PlanRepository(test_db)

        assert (await repo.get_by_provider_price_id("price_pro_monthly")).id == "pro_monthly"
        assert await repo.get_by_provider_price_id("price_missing") is None

    async def test_get_free_plan(self, test_db, plans):
        plan = await PlanRepository(test_db).get_free_plan()

        assert plan.id == "free"
        assert plan.is_free is True

    async def test_get_free_plan_empty_catalog(self, test_db):
        assert await PlanRepository(test_db).get_free_plan() is None

    async def test_active_plans_exclude_retired(self, test_db, plans):
        test_db.add(
            PlanEntity(
                id="legacy",
                name="Legacy",
                provider_price_id="price_legacy",
                billing_interval="month",
                hours_per_month=50.0,
                price_cents=499,
                is_active=False,
            )
        )
        await test_db.flush()

        active = await PlanRepository(test_db).get_active_plans()

        assert [p.id for p in active] == ["free", "basic_monthly", "pro_monthly"]

    async def test_plans_with_more_hours(self, test_db, plans):
        upgrades = await PlanRepository(test_db).get_plans_with_more_hours(10.0)

        assert [p.id for p in upgrades] == ["pro_monthly"]


@pytest.mark.asyncio
class TestPaymentCustomerRepository:
    """Tests for PaymentCustomerRepository."""

    async def test_link_and_lookup(self, test_db):
        repo = PaymentCustomerRepository(test_db)

        customer = await repo.link("user_1", "cus_1")

        assert customer.user_id == "user_1"
        assert customer.payment_provider == "stripe"
        assert (await repo.get_by_provider_customer_id("cus_1")).user_id == "user_1"

    async def test_link_repoints_existing_user(self, test_db):
        repo = PaymentCustomerRepository(test_db)
        await repo.link("user_1", "cus_old")

        await repo.link("user_1", "cus_new")

        assert await repo.get_by_provider_customer_id("cus_old") is None
        assert (await repo.get_by_provider_customer_id("cus_new")).user_id == "user_1"

    async def test_unknown_customer(self, test_db):
        repo = PaymentCustomerRepository(test_db)
        assert await repo.get_by_provider_customer_id("cus_nobody") is None
