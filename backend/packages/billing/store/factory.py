"""
Factory for getting the subscription store.
"""

from packages.billing.store.interface import SubscriptionStore
from packages.billing.store.sqlalchemy_store import SqlAlchemySubscriptionStore


def get_subscription_store() -> SubscriptionStore:
    return SqlAlchemySubscriptionStore()
