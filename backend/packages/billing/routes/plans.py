"""
Plans API routes.

Public endpoint for retrieving available subscription plans.
"""

from fastapi import APIRouter, Depends

from packages.billing.models.schemas.billing import PlanResponse, PlansResponse
from packages.billing.store.factory import get_subscription_store
from packages.billing.store.interface import SubscriptionStore

router = APIRouter()


@router.get("", response_model=PlansResponse)
async def get_plans(store: SubscriptionStore = Depends(get_subscription_store)):
    """
    Get all active subscription plans, cheapest first.

    This endpoint is public (no auth required) for pricing pages.
    """
    plans = await store.get_all_plans()
    return PlansResponse(plans=[PlanResponse.model_validate(plan) for plan in plans])
