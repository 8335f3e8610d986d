"""
Repository for current subscriptions and their history.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.repositories.base import BaseRepository
from packages.billing.models.database.subscription import (
    SubscriptionEntity,
    SubscriptionHistoryEntity,
)
from packages.billing.models.domain.subscription import Subscription
from packages.billing.models.domain.history import HistoryEntry
from packages.billing.models.domain.enums import SubscriptionStatus
from common.core.otel_axiom_exporter import trace_span

# Statuses that count as "the user's current plan"
ACCESS_STATUSES = (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIALING.value)


class SubscriptionRepository(BaseRepository[SubscriptionEntity, Subscription]):
    """Repository for managing current user subscriptions."""

    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(SubscriptionEntity, Subscription, db_session)

    @trace_span
    async def get_active_for_user(self, user_id: str) -> list[Subscription]:
        """All access-granting rows for a user, latest period end first."""
        async with self._get_session() as session:
            result = await session.execute(
                select(SubscriptionEntity)
                .where(
                    SubscriptionEntity.user_id == user_id,
                    SubscriptionEntity.status.in_(ACCESS_STATUSES),
                )
                .order_by(
                    SubscriptionEntity.current_period_end.desc(),
                    SubscriptionEntity.id.desc(),
                )
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def get_by_provider_subscription_id(
        self, provider_subscription_id: str
    ) -> Optional[Subscription]:
        async with self._get_session() as session:
            result = await session.execute(
                select(SubscriptionEntity).where(
                    SubscriptionEntity.provider_subscription_id
                    == provider_subscription_id
                )
            )
            db_subscription = result.scalar_one_or_none()
            return self._entity_to_domain(db_subscription) if db_subscription else None

    @trace_span
    async def get_all_for_user(self, user_id: str) -> list[Subscription]:
        """Every current row for a user regardless of status."""
        async with self._get_session() as session:
            result = await session.execute(
                select(SubscriptionEntity)
                .where(SubscriptionEntity.user_id == user_id)
                .order_by(SubscriptionEntity.created_at.desc(), SubscriptionEntity.id.desc())
            )
            return self._entities_to_domain(result.scalars().all())


class SubscriptionHistoryRepository(
    BaseRepository[SubscriptionHistoryEntity, HistoryEntry]
):
    """Append-only history. Exposes create and reads, nothing else is used."""

    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(SubscriptionHistoryEntity, HistoryEntry, db_session)

    @trace_span
    async def get_by_user(self, user_id: str, limit: int = 100) -> list[HistoryEntry]:
        async with self._get_session() as session:
            result = await session.execute(
                select(SubscriptionHistoryEntity)
                .where(SubscriptionHistoryEntity.user_id == user_id)
                .order_by(
                    SubscriptionHistoryEntity.replaced_at.desc(),
                    SubscriptionHistoryEntity.id.desc(),
                )
                .limit(limit)
            )
            return self._entities_to_domain(result.scalars().all())
