"""Subscription store - persistence seam for the billing services."""

from packages.billing.store.interface import SubscriptionStore
from packages.billing.store.factory import get_subscription_store

__all__ = [
    "SubscriptionStore",
    "get_subscription_store",
]
