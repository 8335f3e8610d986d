"""Billing services."""

from packages.billing.services.subscription_service import SubscriptionService
from packages.billing.services.plan_change_service import PlanChangeService
from packages.billing.services.usage_limiter import UsageLimiter
from packages.billing.services.integrity_service import IntegrityService

__all__ = [
    "SubscriptionService",
    "PlanChangeService",
    "UsageLimiter",
    "IntegrityService",
]
