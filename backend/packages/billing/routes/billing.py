"""
Billing API routes.

Endpoints for subscription state, plan changes and usage. The caller's
identity arrives as `user_id`; authentication is handled upstream.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from common.core.clock import Clock, get_clock
from packages.billing.models.schemas.billing import (
    CancelSubscriptionRequest,
    CancelSubscriptionResponse,
    ChangePlanRequest,
    ChangePlanResponse,
    CleanupRequest,
    CleanupResponse,
    HistoryEntryResponse,
    PlanResponse,
    SubscriptionInfoResponse,
    UsageCheckRequest,
    UsageCheckResponse,
    UsageInfoResponse,
    UsageRecordRequest,
    UsageRecordResponse,
)
from packages.billing.providers.payment.factory import get_payment_gateway
from packages.billing.providers.payment.interface import PaymentGatewayInterface
from packages.billing.services.integrity_service import IntegrityService
from packages.billing.services.plan_change_service import PlanChangeService
from packages.billing.services.subscription_service import SubscriptionService
from packages.billing.services.usage_limiter import UsageLimiter
from packages.billing.store.factory import get_subscription_store
from packages.billing.store.interface import SubscriptionStore

router = APIRouter()


def get_subscription_service(
    store: SubscriptionStore = Depends(get_subscription_store),
    clock: Clock = Depends(get_clock),
) -> SubscriptionService:
    return SubscriptionService(store=store, clock=clock)


def get_plan_change_service(
    store: SubscriptionStore = Depends(get_subscription_store),
    gateway: PaymentGatewayInterface = Depends(get_payment_gateway),
    clock: Clock = Depends(get_clock),
) -> PlanChangeService:
    return PlanChangeService(store=store, gateway=gateway, clock=clock)


def get_usage_limiter(
    store: SubscriptionStore = Depends(get_subscription_store),
    clock: Clock = Depends(get_clock),
) -> UsageLimiter:
    return UsageLimiter(store=store, clock=clock)


def get_integrity_service(
    store: SubscriptionStore = Depends(get_subscription_store),
    clock: Clock = Depends(get_clock),
) -> IntegrityService:
    return IntegrityService(store=store, clock=clock)


# ============================================================================
# Subscription Status
# ============================================================================


@router.get("/subscription", response_model=SubscriptionInfoResponse)
async def get_subscription(
    user_id: str = Query(..., min_length=1),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Get the user's subscription, plan, usage and the plan catalog.

    Users without a subscription get a virtual free-tier subscription.
    """
    info = await service.get_user_subscription_info(user_id)
    return SubscriptionInfoResponse.model_validate(info)


@router.get("/upgrades", response_model=List[PlanResponse])
async def get_upgrades(
    user_id: str = Query(..., min_length=1),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Plans with more monthly hours than the user's current plan."""
    plans = await service.get_plan_upgrades(user_id)
    return [PlanResponse.model_validate(plan) for plan in plans]


@router.get("/history", response_model=List[HistoryEntryResponse])
async def get_history(
    user_id: str = Query(..., min_length=1),
    service: SubscriptionService = Depends(get_subscription_service),
):
    entries = await service.get_history(user_id)
    return [HistoryEntryResponse.model_validate(entry) for entry in entries]


# ============================================================================
# Plan Changes
# ============================================================================


@router.post("/change-plan", response_model=ChangePlanResponse)
async def change_plan(
    request: ChangePlanRequest,
    service: PlanChangeService = Depends(get_plan_change_service),
):
    """
    Change to another paid plan.

    Upgrades apply immediately; downgrades apply at the end of the period.
    Moving to the free plan goes through /cancel instead.
    """
    result = await service.change_plan(request.user_id, request.target_plan_id)
    return ChangePlanResponse.model_validate(result)


@router.post("/cancel", response_model=CancelSubscriptionResponse)
async def cancel_subscription(
    request: CancelSubscriptionRequest,
    service: PlanChangeService = Depends(get_plan_change_service),
):
    """Schedule a move to the free plan at the end of the paid period."""
    result = await service.cancel_subscription(request.user_id)
    return CancelSubscriptionResponse.model_validate(result)


# ============================================================================
# Usage
# ============================================================================


@router.get("/usage", response_model=UsageInfoResponse)
async def get_usage(
    user_id: str = Query(..., min_length=1),
    limiter: UsageLimiter = Depends(get_usage_limiter),
):
    info = await limiter.get_usage_info(user_id)
    return UsageInfoResponse.model_validate(info)


@router.post("/usage/check", response_model=UsageCheckResponse)
async def check_usage(
    request: UsageCheckRequest,
    limiter: UsageLimiter = Depends(get_usage_limiter),
):
    """
    Ask whether `hours_to_add` more hours are allowed this month.

    A denial is a normal 200 response with `allowed: false`.
    """
    decision = await limiter.check_usage(
        request.user_id, request.hours_to_add, request.grace_period_seconds
    )
    return UsageCheckResponse.model_validate(decision)


@router.post("/usage/record", response_model=UsageRecordResponse)
async def record_usage(
    request: UsageRecordRequest,
    limiter: UsageLimiter = Depends(get_usage_limiter),
):
    record = await limiter.record_usage(request.user_id, request.duration_seconds)
    return UsageRecordResponse.model_validate(record)


# ============================================================================
# Maintenance
# ============================================================================


@router.post("/maintenance/cleanup-duplicates", response_model=CleanupResponse)
async def cleanup_duplicates(
    request: CleanupRequest,
    service: IntegrityService = Depends(get_integrity_service),
):
    """Collapse a user's active subscriptions down to the latest-ending one."""
    result = await service.cleanup_duplicate_subscriptions(request.user_id)
    return CleanupResponse.model_validate(result)
