"""Results of user-initiated subscription changes."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from packages.billing.models.domain.enums import ChangeType


class ChangePlanResult(BaseModel):
    success: bool
    message: str
    change_type: ChangeType
    new_plan_id: str
    effective_date: str  # "immediately" or ISO-8601 period end
    pending_change: bool


class CancelSubscriptionResult(BaseModel):
    success: bool
    message: str
    cancellation_scheduled: bool
    period_end_date: datetime
    benefits_preserved: bool = True


class CleanupResult(BaseModel):
    """Outcome of a duplicate-subscription cleanup for one user."""

    user_id: str
    kept_subscription_id: Optional[int] = None
    removed_subscription_ids: List[int] = []
    timestamps_repaired: bool = False
