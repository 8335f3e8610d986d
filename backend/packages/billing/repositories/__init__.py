"""Billing repositories."""

from packages.billing.repositories.subscription_repository import (
    SubscriptionRepository,
    SubscriptionHistoryRepository,
)
from packages.billing.repositories.plan_repository import PlanRepository
from packages.billing.repositories.usage_repository import MonthlyUsageRepository
from packages.billing.repositories.customer_repository import (
    PaymentCustomerRepository,
)

__all__ = [
    "SubscriptionRepository",
    "SubscriptionHistoryRepository",
    "PlanRepository",
    "MonthlyUsageRepository",
    "PaymentCustomerRepository",
]
