"""
API schemas for billing operations.

Request and response models for billing endpoints.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from packages.billing.models.domain.enums import (
    BillingInterval,
    ChangeType,
    PaymentProvider,
    SubscriptionStatus,
)


# ============================================================================
# Plan Schemas
# ============================================================================


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    billing_interval: BillingInterval
    hours_per_month: float
    price_cents: int
    display_order: int
    is_free: bool


class PlansResponse(BaseModel):
    """Response model for plans endpoint."""

    plans: List[PlanResponse]


# ============================================================================
# Subscription Schemas
# ============================================================================


class SubscriptionResponse(BaseModel):
    """Current subscription as shown to the user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    plan_id: str
    status: SubscriptionStatus
    payment_provider: PaymentProvider
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool
    canceled_at: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    pending_plan_id: Optional[str] = None
    pending_change_effective_date: Optional[datetime] = None
    pending_change_reason: Optional[str] = None


class UsageInfoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    limit_hours: float
    used_hours: float
    remaining_hours: float
    percentage_used: float
    is_over_limit: bool
    files_processed: int
    plan_name: str
    billing_interval: str
    subscription_status: str
    period_start: datetime
    period_end: datetime
    warning_message: Optional[str] = None


class SubscriptionInfoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subscription: SubscriptionResponse
    plan: PlanResponse
    usage: UsageInfoResponse
    available_plans: List[PlanResponse]
    is_virtual: bool = Field(
        ..., description="True when the user has no subscription and sees the free tier"
    )


class HistoryEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    original_subscription_id: Optional[int] = None
    plan_id: str
    status: str
    current_period_start: datetime
    current_period_end: datetime
    replacement_reason: str
    replaced_at: datetime


# ============================================================================
# Plan Change Schemas
# ============================================================================


class ChangePlanRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    target_plan_id: str = Field(..., min_length=1)


class ChangePlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    message: str
    change_type: ChangeType
    new_plan_id: str
    effective_date: str = Field(
        ..., description='"immediately" or the ISO-8601 date the change takes effect'
    )
    pending_change: bool


class CancelSubscriptionRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class CancelSubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    message: str
    cancellation_scheduled: bool
    period_end_date: datetime
    benefits_preserved: bool


# ============================================================================
# Usage Schemas
# ============================================================================


class UsageCheckRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    hours_to_add: float = Field(..., ge=0)
    grace_period_seconds: Optional[int] = Field(
        default=None,
        ge=0,
        description="Overrun tolerance in seconds. Defaults to the configured grace period.",
    )


class UsageCheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    allowed: bool
    reason: Optional[str] = None
    cap_hours: float
    plan_name: str
    used_hours: float
    requested_hours: float
    grace_period_seconds: int


class UsageRecordRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    duration_seconds: float = Field(..., ge=0)


class UsageRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    year_month: str
    hours_used: float
    files_processed: int


# ============================================================================
# Maintenance Schemas
# ============================================================================


class CleanupRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class CleanupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    kept_subscription_id: Optional[int] = None
    removed_subscription_ids: List[int]
    timestamps_repaired: bool
