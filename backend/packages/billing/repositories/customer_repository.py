"""
Repository for user <-> payment customer links.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.billing.models.database.customer import PaymentCustomerEntity
from packages.billing.models.domain.customer import PaymentCustomer


class PaymentCustomerRepository(BaseRepository[PaymentCustomerEntity, PaymentCustomer]):
    """Keyed by user_id, so `get(user_id)` returns the user's link."""

    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(PaymentCustomerEntity, PaymentCustomer, db_session)

    @trace_span
    async def get_by_provider_customer_id(
        self, provider_customer_id: str
    ) -> Optional[PaymentCustomer]:
        async with self._get_session() as session:
            result = await session.execute(
                select(PaymentCustomerEntity).where(
                    PaymentCustomerEntity.provider_customer_id == provider_customer_id
                )
            )
            db_customer = result.scalar_one_or_none()
            return self._entity_to_domain(db_customer) if db_customer else None

    @trace_span
    async def link(
        self, user_id: str, provider_customer_id: str, payment_provider: str = "stripe"
    ) -> PaymentCustomer:
        """Create or repoint the user's customer link."""
        async with self._get_session() as session:
            entity = await session.get(PaymentCustomerEntity, user_id)
            if entity is None:
                entity = PaymentCustomerEntity(
                    user_id=user_id,
                    provider_customer_id=provider_customer_id,
                    payment_provider=payment_provider,
                )
                session.add(entity)
            else:
                entity.provider_customer_id = provider_customer_id
                entity.payment_provider = payment_provider
            await session.flush()
            await session.refresh(entity)
            return self._entity_to_domain(entity)
