"""
Repository for the plan catalog.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.repositories.base import BaseRepository
from packages.billing.models.database.plan import PlanEntity
from packages.billing.models.domain.plan import Plan
from packages.billing.models.domain.enums import BillingInterval
from common.core.otel_axiom_exporter import trace_span


class PlanRepository(BaseRepository[PlanEntity, Plan]):
    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(PlanEntity, Plan, db_session)

    @trace_span
    async def get_by_provider_price_id(self, price_id: str) -> Optional[Plan]:
        async with self._get_session() as session:
            result = await session.execute(
                select(PlanEntity).where(PlanEntity.provider_price_id == price_id)
            )
            db_plan = result.scalar_one_or_none()
            return self._entity_to_domain(db_plan) if db_plan else None

    @trace_span
    async def get_free_plan(self) -> Optional[Plan]:
        """The catalog's free plan, identified by its billing interval."""
        async with self._get_session() as session:
            result = await session.execute(
                select(PlanEntity)
                .where(PlanEntity.billing_interval == BillingInterval.FREE.value)
                .order_by(PlanEntity.display_order)
                .limit(1)
            )
            db_plan = result.scalar_one_or_none()
            return self._entity_to_domain(db_plan) if db_plan else None

    @trace_span
    async def get_active_plans(self) -> list[Plan]:
        async with self._get_session() as session:
            result = await session.execute(
                select(PlanEntity)
                .where(PlanEntity.is_active.is_(True))
                .order_by(PlanEntity.price_cents, PlanEntity.display_order)
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def get_plans_with_more_hours(self, hours_per_month: float) -> list[Plan]:
        async with self._get_session() as session:
            result = await session.execute(
                select(PlanEntity)
                .where(
                    PlanEntity.is_active.is_(True),
                    PlanEntity.hours_per_month > hours_per_month,
                )
                .order_by(PlanEntity.price_cents, PlanEntity.display_order)
            )
            return self._entities_to_domain(result.scalars().all())
