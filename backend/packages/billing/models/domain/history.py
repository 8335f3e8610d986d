"""Domain models for the subscription audit trail."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from packages.billing.models.domain.enums import ReplacementReason
from packages.billing.models.domain.subscription import Subscription


class HistoryEntry(BaseModel):
    """Immutable snapshot of a retired subscription."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    original_subscription_id: Optional[int] = None
    user_id: str
    plan_id: str
    provider_subscription_id: Optional[str] = None
    provider_price_id: Optional[str] = None
    payment_provider: Optional[str] = None
    status: str
    current_period_start: datetime
    current_period_end: datetime
    canceled_at: Optional[datetime] = None

    replacement_reason: str
    replaced_at: datetime


class HistoryEntryCreateModel(BaseModel):
    original_subscription_id: Optional[int] = None
    user_id: str
    plan_id: str
    provider_subscription_id: Optional[str] = None
    provider_price_id: Optional[str] = None
    payment_provider: Optional[str] = None
    status: str
    current_period_start: datetime
    current_period_end: datetime
    canceled_at: Optional[datetime] = None
    replacement_reason: str
    replaced_at: datetime

    @classmethod
    def from_subscription(
        cls, subscription: Subscription, reason: ReplacementReason, replaced_at: datetime
    ) -> "HistoryEntryCreateModel":
        """Snapshot everything except pending-change bookkeeping."""
        return cls(
            original_subscription_id=subscription.id,
            user_id=subscription.user_id,
            plan_id=subscription.plan_id,
            provider_subscription_id=subscription.provider_subscription_id,
            provider_price_id=subscription.provider_price_id,
            payment_provider=subscription.payment_provider.value,
            status=subscription.status.value,
            current_period_start=subscription.current_period_start,
            current_period_end=subscription.current_period_end,
            canceled_at=subscription.canceled_at,
            replacement_reason=reason.value,
            replaced_at=replaced_at,
        )
