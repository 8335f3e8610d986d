"""Aggregated view of a user's billing state."""

from typing import List
from pydantic import BaseModel

from packages.billing.models.domain.plan import Plan
from packages.billing.models.domain.subscription import Subscription
from packages.billing.models.domain.usage import UsageInfo

# Id carried by the synthesized subscription of users without one
VIRTUAL_SUBSCRIPTION_ID = 0


class UserSubscriptionInfo(BaseModel):
    subscription: Subscription
    plan: Plan
    usage: UsageInfo
    available_plans: List[Plan]
    # True when the user has no stored subscription and sees the free tier
    is_virtual: bool = False
