"""
SQLAlchemy implementation of the subscription store.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from common.core.clock import Clock, get_clock
from common.core.otel_axiom_exporter import get_logger, trace_span
from common.db.scoped import transaction
from packages.billing.models.domain.enums import ReplacementReason
from packages.billing.models.domain.history import (
    HistoryEntry,
    HistoryEntryCreateModel,
)
from packages.billing.models.domain.plan import Plan
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.billing.models.domain.usage import UsageRecord
from packages.billing.repositories.customer_repository import (
    PaymentCustomerRepository,
)
from packages.billing.repositories.plan_repository import PlanRepository
from packages.billing.repositories.subscription_repository import (
    SubscriptionHistoryRepository,
    SubscriptionRepository,
)
from packages.billing.repositories.usage_repository import MonthlyUsageRepository
from packages.billing.store.interface import SubscriptionStore

logger = get_logger(__name__)


class SqlAlchemySubscriptionStore(SubscriptionStore):
    """
    Store composed of per-table repositories.

    Archive-then-delete pairs run inside `transaction()` so a history row
    never exists without its source row being removed.
    """

    def __init__(
        self, db_session: Optional[AsyncSession] = None, clock: Optional[Clock] = None
    ):
        self.subscription_repo = SubscriptionRepository(db_session)
        self.history_repo = SubscriptionHistoryRepository(db_session)
        self.plan_repo = PlanRepository(db_session)
        self.usage_repo = MonthlyUsageRepository(db_session)
        self.customer_repo = PaymentCustomerRepository(db_session)
        self.clock = clock or get_clock()

    # Subscriptions

    async def create_subscription(self, data: SubscriptionCreateModel) -> Subscription:
        return await self.subscription_repo.create(data)

    async def update_subscription(
        self, subscription_id: int, data: SubscriptionUpdateModel
    ) -> Optional[Subscription]:
        return await self.subscription_repo.update(subscription_id, data)

    async def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        return await self.subscription_repo.get(subscription_id)

    async def delete_subscription(self, subscription_id: int) -> bool:
        return await self.subscription_repo.delete(subscription_id)

    async def find_active(self, user_id: str) -> Optional[Subscription]:
        active = await self.subscription_repo.get_active_for_user(user_id)
        if len(active) > 1:
            logger.warning(
                f"User {user_id} has {len(active)} active subscriptions",
                extra={"user_id": user_id, "subscription_ids": [s.id for s in active]},
            )
        return active[0] if active else None

    async def find_by_provider_id(
        self, provider_subscription_id: str
    ) -> Optional[Subscription]:
        return await self.subscription_repo.get_by_provider_subscription_id(
            provider_subscription_id
        )

    async def find_all_for_user(self, user_id: str) -> List[Subscription]:
        return await self.subscription_repo.get_all_for_user(user_id)

    # Plans

    async def get_plan(self, plan_id: str) -> Optional[Plan]:
        return await self.plan_repo.get(plan_id)

    async def get_plan_by_provider_price(self, price_id: str) -> Optional[Plan]:
        return await self.plan_repo.get_by_provider_price_id(price_id)

    async def get_free_plan(self) -> Optional[Plan]:
        return await self.plan_repo.get_free_plan()

    async def get_all_plans(self) -> List[Plan]:
        return await self.plan_repo.get_active_plans()

    async def get_available_upgrades(self, plan_id: str) -> List[Plan]:
        plan = await self.plan_repo.get(plan_id)
        if plan is None:
            return []
        return await self.plan_repo.get_plans_with_more_hours(plan.hours_per_month)

    # History

    async def save_to_history(
        self, subscription: Subscription, reason: ReplacementReason
    ) -> HistoryEntry:
        entry = await self.history_repo.create(
            HistoryEntryCreateModel.from_subscription(
                subscription, reason, self.clock.now()
            )
        )
        logger.info(
            f"Archived subscription {subscription.id} ({reason.value})",
            extra={
                "user_id": subscription.user_id,
                "subscription_id": subscription.id,
                "plan_id": subscription.plan_id,
                "reason": reason.value,
            },
        )
        return entry

    async def get_history(self, user_id: str) -> List[HistoryEntry]:
        return await self.history_repo.get_by_user(user_id)

    @trace_span
    async def deactivate_all(
        self, user_id: str, reason: ReplacementReason
    ) -> List[Subscription]:
        async with transaction():
            active = await self.subscription_repo.get_active_for_user(user_id)
            for subscription in active:
                await self._retire(subscription, reason)
        return active

    @trace_span
    async def cleanup_duplicates(self, user_id: str) -> List[Subscription]:
        async with transaction():
            active = await self.subscription_repo.get_active_for_user(user_id)
            # Ordered by period end descending, the first one survives
            duplicates = active[1:]
            for subscription in duplicates:
                await self._retire(subscription, ReplacementReason.DUPLICATE_CLEANUP)
        return duplicates

    async def _retire(self, subscription: Subscription, reason: ReplacementReason):
        await self.save_to_history(subscription, reason)
        await self.subscription_repo.delete(subscription.id)

    # Usage

    async def get_usage(self, user_id: str, year_month: str) -> Optional[UsageRecord]:
        return await self.usage_repo.get_for_month(user_id, year_month)

    async def save_usage(
        self, user_id: str, year_month: str, hours: float, processed_at: datetime
    ) -> UsageRecord:
        return await self.usage_repo.increment(user_id, year_month, hours, processed_at)

    # Customers

    async def get_user_id_for_customer(self, provider_customer_id: str) -> Optional[str]:
        customer = await self.customer_repo.get_by_provider_customer_id(
            provider_customer_id
        )
        return customer.user_id if customer else None

    async def link_customer(self, user_id: str, provider_customer_id: str) -> None:
        await self.customer_repo.link(user_id, provider_customer_id)
