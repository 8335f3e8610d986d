"""
Service for reading a user's subscription state and the plan catalog.
"""

from typing import List, Optional

from dateutil.relativedelta import relativedelta

from common.core.clock import Clock, get_clock
from common.core.constants import FREE_TIER_HOURS_PER_MONTH, FREE_TIER_PLAN_NAME
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.enums import (
    BillingInterval,
    PaymentProvider,
    SubscriptionStatus,
)
from packages.billing.models.domain.plan import Plan
from packages.billing.models.domain.subscription import Subscription
from packages.billing.models.domain.subscription_info import (
    VIRTUAL_SUBSCRIPTION_ID,
    UserSubscriptionInfo,
)
from packages.billing.services.usage_limiter import UsageLimiter
from packages.billing.store.factory import get_subscription_store
from packages.billing.store.interface import SubscriptionStore

logger = get_logger(__name__)


class SubscriptionService:
    """Read side of billing: what plan a user is on and what they can move to."""

    def __init__(
        self,
        store: Optional[SubscriptionStore] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store or get_subscription_store()
        self.clock = clock or get_clock()
        self.usage_limiter = UsageLimiter(store=self.store, clock=self.clock)

    async def _free_plan(self) -> Plan:
        plan = await self.store.get_free_plan()
        if plan is not None:
            return plan
        return Plan(
            id="free",
            name=FREE_TIER_PLAN_NAME,
            billing_interval=BillingInterval.FREE,
            hours_per_month=FREE_TIER_HOURS_PER_MONTH,
            price_cents=0,
        )

    def _virtual_subscription(self, user_id: str, plan: Plan) -> Subscription:
        now = self.clock.now()
        return Subscription(
            id=VIRTUAL_SUBSCRIPTION_ID,
            user_id=user_id,
            plan_id=plan.id,
            payment_provider=PaymentProvider.NONE,
            status=SubscriptionStatus.ACTIVE,
            current_period_start=now,
            current_period_end=now + relativedelta(years=1),
        )

    @trace_span
    async def get_user_subscription_info(self, user_id: str) -> UserSubscriptionInfo:
        """
        Current subscription, plan, usage and catalog for a user.

        Users without an active subscription get a synthesized free-tier
        subscription instead of an error.
        """
        subscription = await self.store.find_active(user_id)
        plan = await self.store.get_plan(subscription.plan_id) if subscription else None

        is_virtual = subscription is None or plan is None
        if is_virtual:
            if subscription is not None:
                logger.warning(
                    f"Subscription {subscription.id} references missing plan {subscription.plan_id}",
                    extra={"user_id": user_id, "plan_id": subscription.plan_id},
                )
            plan = await self._free_plan()
            subscription = self._virtual_subscription(user_id, plan)

        usage = await self.usage_limiter.get_usage_info(user_id)
        available_plans = await self.store.get_all_plans()

        return UserSubscriptionInfo(
            subscription=subscription,
            plan=plan,
            usage=usage,
            available_plans=available_plans,
            is_virtual=is_virtual,
        )

    @trace_span
    async def get_available_plans(self) -> List[Plan]:
        return await self.store.get_all_plans()

    @trace_span
    async def get_plan_upgrades(self, user_id: str) -> List[Plan]:
        """Plans offering more hours than the user's current (or free) plan."""
        subscription = await self.store.find_active(user_id)
        if subscription is not None:
            return await self.store.get_available_upgrades(subscription.plan_id)

        free_plan = await self._free_plan()
        plans = await self.store.get_all_plans()
        return [p for p in plans if p.hours_per_month > free_plan.hours_per_month]

    @trace_span
    async def get_history(self, user_id: str):
        return await self.store.get_history(user_id)
