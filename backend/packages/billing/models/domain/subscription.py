"""
Domain models for subscriptions.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator

from packages.billing.models.domain.enums import (
    SubscriptionStatus,
    PaymentProvider,
)


class Subscription(BaseModel):
    """
    A user's current subscription.

    At most one ACTIVE row exists per user. While `cancel_at_period_end` is
    set the user keeps `plan_id` until the provider reports the deletion;
    the plan they will land on is `pending_plan_id`.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    plan_id: str

    # External platform IDs (free-tier rows have none)
    provider_subscription_id: Optional[str] = None
    provider_price_id: Optional[str] = None
    payment_provider: PaymentProvider = PaymentProvider.STRIPE

    status: SubscriptionStatus

    # Billing cycle
    current_period_start: datetime
    current_period_end: datetime

    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    trial_end: Optional[datetime] = None

    # Deferred plan change
    pending_plan_id: Optional[str] = None
    pending_change_effective_date: Optional[datetime] = None
    pending_change_reason: Optional[str] = None
    pending_change_requested_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def has_access(self) -> bool:
        return self.status.has_access()

    def has_pending_change(self) -> bool:
        return bool(self.pending_plan_id)

    def days_until_renewal(self, now: datetime) -> int:
        """Whole days left in the current billing period."""
        delta = self.current_period_end - now
        return max(0, delta.days)


class SubscriptionCreateModel(BaseModel):
    """Model for creating a new subscription."""

    user_id: str
    plan_id: str
    status: str = SubscriptionStatus.ACTIVE.value
    payment_provider: str = PaymentProvider.STRIPE.value
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool = False

    provider_subscription_id: Optional[str] = None
    provider_price_id: Optional[str] = None
    canceled_at: Optional[datetime] = None
    trial_end: Optional[datetime] = None

    @field_validator("status", "payment_provider", mode="before")
    @classmethod
    def validate_enum(cls, v):
        if isinstance(v, (SubscriptionStatus, PaymentProvider)):
            return v.value
        return v


class SubscriptionUpdateModel(BaseModel):
    """
    Model for updating a subscription.

    Only fields that were explicitly set are written, so passing
    `pending_plan_id=None` clears the column while omitting it leaves it alone.
    """

    plan_id: Optional[str] = None
    provider_subscription_id: Optional[str] = None
    provider_price_id: Optional[str] = None
    status: Optional[str] = None

    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None

    cancel_at_period_end: Optional[bool] = None
    canceled_at: Optional[datetime] = None
    trial_end: Optional[datetime] = None

    pending_plan_id: Optional[str] = None
    pending_change_effective_date: Optional[datetime] = None
    pending_change_reason: Optional[str] = None
    pending_change_requested_at: Optional[datetime] = None

    @field_validator("status", "pending_change_reason", mode="before")
    @classmethod
    def validate_enum(cls, v):
        if hasattr(v, "value"):
            return v.value
        return v

    @classmethod
    def clearing_pending_change(cls, **fields) -> "SubscriptionUpdateModel":
        """Update that also wipes any deferred plan change."""
        return cls(
            pending_plan_id=None,
            pending_change_effective_date=None,
            pending_change_reason=None,
            pending_change_requested_at=None,
            **fields,
        )
