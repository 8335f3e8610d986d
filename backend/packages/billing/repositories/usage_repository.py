"""
Repository for monthly usage tracking.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from common.repositories.base import BaseRepository
from packages.billing.models.database.usage import MonthlyUsageEntity
from packages.billing.models.domain.usage import UsageRecord, UsageRecordCreateModel
from common.core.otel_axiom_exporter import trace_span


class MonthlyUsageRepository(BaseRepository[MonthlyUsageEntity, UsageRecord]):
    """Repository for per-month usage counters."""

    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(MonthlyUsageEntity, UsageRecord, db_session)

    @trace_span
    async def get_for_month(self, user_id: str, year_month: str) -> Optional[UsageRecord]:
        async with self._get_session() as session:
            result = await session.execute(
                select(MonthlyUsageEntity).where(
                    MonthlyUsageEntity.user_id == user_id,
                    MonthlyUsageEntity.year_month == year_month,
                )
                # increment() bypasses the identity map
                .execution_options(populate_existing=True)
            )
            db_usage = result.scalar_one_or_none()
            return self._entity_to_domain(db_usage) if db_usage else None

    @trace_span
    async def increment(
        self,
        user_id: str,
        year_month: str,
        hours: float,
        processed_at: datetime,
    ) -> UsageRecord:
        """
        Add `hours` and one file to the month's counters, creating the row on
        first use.

        The increment is a single UPDATE ... SET hours_used = hours_used + x so
        concurrent recorders never lose each other's writes.
        """
        async with self._get_session() as session:
            result = await session.execute(
                update(MonthlyUsageEntity)
                .where(
                    MonthlyUsageEntity.user_id == user_id,
                    MonthlyUsageEntity.year_month == year_month,
                )
                .values(
                    hours_used=MonthlyUsageEntity.hours_used + hours,
                    files_processed=MonthlyUsageEntity.files_processed + 1,
                    last_processing_date=processed_at,
                )
                .execution_options(synchronize_session=False)
            )
            await session.flush()
            updated = result.rowcount > 0

        if not updated:
            return await self.create(
                UsageRecordCreateModel(
                    user_id=user_id,
                    year_month=year_month,
                    hours_used=hours,
                    files_processed=1,
                    last_processing_date=processed_at,
                )
            )
        return await self.get_for_month(user_id, year_month)

    @trace_span
    async def get_by_user(self, user_id: str, limit: int = 12) -> list[UsageRecord]:
        """Most recent months first."""
        async with self._get_session() as session:
            result = await session.execute(
                select(MonthlyUsageEntity)
                .where(MonthlyUsageEntity.user_id == user_id)
                .order_by(MonthlyUsageEntity.year_month.desc())
                .limit(limit)
            )
            return self._entities_to_domain(result.scalars().all())
