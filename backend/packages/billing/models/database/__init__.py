"""Database models for billing."""

from packages.billing.models.database.plan import PlanEntity
from packages.billing.models.database.subscription import (
    SubscriptionEntity,
    SubscriptionHistoryEntity,
)
from packages.billing.models.database.usage import MonthlyUsageEntity
from packages.billing.models.database.customer import PaymentCustomerEntity

__all__ = [
    "PlanEntity",
    "SubscriptionEntity",
    "SubscriptionHistoryEntity",
    "MonthlyUsageEntity",
    "PaymentCustomerEntity",
]
