"""
Domain models for usage tracking and quotas.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class UsageRecord(BaseModel):
    """
    Hours processed by one user in one calendar month.

    Only ever grows: there is no decrement or delete path.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    year_month: str  # "YYYY-MM"
    hours_used: float = 0.0
    files_processed: int = 0
    last_processing_date: Optional[datetime] = None


class UsageRecordCreateModel(BaseModel):
    user_id: str
    year_month: str
    hours_used: float
    files_processed: int = 1
    last_processing_date: datetime


class UsageRecordUpdateModel(BaseModel):
    hours_used: Optional[float] = None
    files_processed: Optional[int] = None
    last_processing_date: Optional[datetime] = None


class UsageDecision(BaseModel):
    """
    Result of a usage check.

    Denials carry a human readable `reason`; the numeric fields are filled
    either way so callers can render their own message.
    """

    allowed: bool
    reason: Optional[str] = None
    cap_hours: float
    plan_name: str
    used_hours: float
    requested_hours: float
    grace_period_seconds: int


class UsageInfo(BaseModel):
    """Usage summary for display."""

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
