"""
Interface for subscription persistence.

Everything the billing services need from storage, in domain terms. The
services never see sessions or entities.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from packages.billing.models.domain.enums import ReplacementReason
from packages.billing.models.domain.history import HistoryEntry
from packages.billing.models.domain.plan import Plan
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.billing.models.domain.usage import UsageRecord


class SubscriptionStore(ABC):
    # Subscriptions

    @abstractmethod
    async def create_subscription(self, data: SubscriptionCreateModel) -> Subscription:
        pass

    @abstractmethod
    async def update_subscription(
        self, subscription_id: int, data: SubscriptionUpdateModel
    ) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def delete_subscription(self, subscription_id: int) -> bool:
        """Delete a row; returns False when it was already gone."""
        pass

    @abstractmethod
    async def find_active(self, user_id: str) -> Optional[Subscription]:
        """
        The user's effective subscription.

        If duplicates exist, the one with the latest period end wins.
        """
        pass

    @abstractmethod
    async def find_by_provider_id(
        self, provider_subscription_id: str
    ) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def find_all_for_user(self, user_id: str) -> List[Subscription]:
        pass

    # Plans

    @abstractmethod
    async def get_plan(self, plan_id: str) -> Optional[Plan]:
        pass

    @abstractmethod
    async def get_plan_by_provider_price(self, price_id: str) -> Optional[Plan]:
        pass

    @abstractmethod
    async def get_free_plan(self) -> Optional[Plan]:
        pass

    @abstractmethod
    async def get_all_plans(self) -> List[Plan]:
        """Active plans ordered by price."""
        pass

    @abstractmethod
    async def get_available_upgrades(self, plan_id: str) -> List[Plan]:
        """Active plans with more monthly hours than `plan_id`."""
        pass

    # History

    @abstractmethod
    async def save_to_history(
        self, subscription: Subscription, reason: ReplacementReason
    ) -> HistoryEntry:
        pass

    @abstractmethod
    async def get_history(self, user_id: str) -> List[HistoryEntry]:
        pass

    @abstractmethod
    async def deactivate_all(
        self, user_id: str, reason: ReplacementReason
    ) -> List[Subscription]:
        """Archive and delete every active row of a user. Returns what was removed."""
        pass

    @abstractmethod
    async def cleanup_duplicates(self, user_id: str) -> List[Subscription]:
        """
        Archive and delete all but the latest-ending active row.

        Returns the removed rows.
        """
        pass

    # Usage

    @abstractmethod
    async def get_usage(self, user_id: str, year_month: str) -> Optional[UsageRecord]:
        pass

    @abstractmethod
    async def save_usage(
        self, user_id: str, year_month: str, hours: float, processed_at: datetime
    ) -> UsageRecord:
        """Add `hours` and one processed file to the month, creating it if needed."""
        pass

    # Customers

    @abstractmethod
    async def get_user_id_for_customer(self, provider_customer_id: str) -> Optional[str]:
        pass

    @abstractmethod
    async def link_customer(self, user_id: str, provider_customer_id: str) -> None:
        pass
