"""
Service for monthly usage limits.

Usage is counted in hours of processed media per calendar month. Each user
may overrun their plan's cap by a small grace period so a file that finishes
slightly past the limit is not rejected.
"""

from datetime import datetime
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta
from fastapi import HTTPException, status

from common.core.clock import Clock, get_clock
from common.core.config import settings
from common.core.constants import FREE_TIER_HOURS_PER_MONTH, FREE_TIER_PLAN_NAME
from common.core.exceptions import ValidationError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.enums import BillingInterval, SubscriptionStatus
from packages.billing.models.domain.plan import Plan
from packages.billing.models.domain.subscription import Subscription
from packages.billing.models.domain.usage import UsageDecision, UsageInfo, UsageRecord
from packages.billing.store.factory import get_subscription_store
from packages.billing.store.interface import SubscriptionStore

logger = get_logger(__name__)

# Absorbs binary float error so that exact boundaries compare as equal
FLOAT_TOLERANCE = 1e-9

SECONDS_PER_HOUR = 3600


def year_month_of(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


def month_bounds(moment: datetime) -> Tuple[datetime, datetime]:
    """First instant of the month containing `moment` and of the next one."""
    start = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return start, start + relativedelta(months=1)


def build_warning_message(used: float, limit: float) -> Optional[str]:
    """Nudge shown once a user crosses 75% of their monthly quota."""
    if limit <= 0:
        return None

    if used > limit + FLOAT_TOLERANCE:
        return (
            f"You have exceeded your monthly limit of {limit:.1f} hours. "
            f"Additional processing may be restricted."
        )

    percentage = used / limit * 100
    if percentage >= 90:
        return (
            f"You've used {percentage:.1f}% of your monthly quota "
            f"({used:.1f}/{limit:.1f} hours). Consider upgrading your plan."
        )
    if percentage >= 75:
        return (
            f"You've used {used:.1f} hours of your {limit:.1f} hour monthly quota "
            f"({percentage:.1f}%)."
        )
    return None


class UsageLimiter:
    """
    Checks and records usage against the user's plan.

    check_usage and record_usage are separate calls, so two concurrent
    requests can both pass the check before either records. The overshoot is
    bounded by one file per concurrent request and is accepted.
    """

    def __init__(
        self,
        store: Optional[SubscriptionStore] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store or get_subscription_store()
        self.clock = clock or get_clock()

    async def _resolve_plan(
        self, user_id: str
    ) -> Tuple[Optional[Subscription], Optional[Plan]]:
        subscription = await self.store.find_active(user_id)
        if subscription is None:
            return None, None

        plan = await self.store.get_plan(subscription.plan_id)
        if plan is None:
            logger.warning(
                f"Active subscription {subscription.id} references missing plan {subscription.plan_id}",
                extra={"user_id": user_id, "plan_id": subscription.plan_id},
            )
        return subscription, plan

    async def _current_usage(self, user_id: str) -> Optional[UsageRecord]:
        return await self.store.get_usage(user_id, year_month_of(self.clock.now()))

    @trace_span
    async def check_usage(
        self,
        user_id: str,
        hours_to_add: float,
        grace_period_seconds: Optional[int] = None,
    ) -> UsageDecision:
        """
        Decide whether `hours_to_add` more hours fit in this month's quota.

        Users without an active subscription (or whose plan row is missing)
        get the fixed free-tier cap.
        """
        if grace_period_seconds is None:
            grace_period_seconds = settings.usage_grace_period_seconds

        usage = await self._current_usage(user_id)
        used = usage.hours_used if usage else 0.0

        _, plan = await self._resolve_plan(user_id)
        if plan is not None:
            cap, plan_name = plan.hours_per_month, plan.name
        else:
            cap, plan_name = FREE_TIER_HOURS_PER_MONTH, FREE_TIER_PLAN_NAME

        decision = UsageDecision(
            allowed=True,
            cap_hours=cap,
            plan_name=plan_name,
            used_hours=used,
            requested_hours=hours_to_add,
            grace_period_seconds=grace_period_seconds,
        )

        projected = used + hours_to_add
        if projected <= cap + FLOAT_TOLERANCE:
            return decision

        excess_seconds = (projected - cap) * SECONDS_PER_HOUR
        if excess_seconds <= grace_period_seconds + FLOAT_TOLERANCE:
            logger.info(
                f"User {user_id} within grace period ({excess_seconds:.1f}s over)",
                extra={"user_id": user_id, "cap": cap, "projected": projected},
            )
            return decision

        decision.allowed = False
        decision.reason = (
            f"monthly limit of {cap:.1f} hours exceeded for {plan_name} plan "
            f"(currently used: {used:.2f} hours, requested: {hours_to_add:.2f} hours, "
            f"grace period: {grace_period_seconds} seconds)"
        )
        logger.warning(
            f"User {user_id} exceeded usage limit",
            extra={
                "user_id": user_id,
                "cap": cap,
                "used": used,
                "requested": hours_to_add,
            },
        )
        return decision

    @trace_span
    async def enforce_usage(
        self,
        user_id: str,
        hours_to_add: float,
        grace_period_seconds: Optional[int] = None,
    ) -> UsageDecision:
        """
        check_usage for request handlers.

        Raises HTTPException 429 if the quota would be exceeded.
        """
        decision = await self.check_usage(user_id, hours_to_add, grace_period_seconds)
        if not decision.allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=decision.reason,
            )
        return decision

    @trace_span
    async def record_usage(self, user_id: str, duration_seconds: float) -> UsageRecord:
        """Add a processed file of `duration_seconds` to this month's usage."""
        if duration_seconds < 0:
            raise ValidationError(
                f"duration_seconds must not be negative, got {duration_seconds}"
            )

        now = self.clock.now()
        hours = duration_seconds / SECONDS_PER_HOUR
        record = await self.store.save_usage(user_id, year_month_of(now), hours, now)

        logger.info(
            f"Recorded {hours:.4f}h of usage for user {user_id}",
            extra={
                "user_id": user_id,
                "year_month": record.year_month,
                "hours_used": record.hours_used,
                "files_processed": record.files_processed,
            },
        )
        return record

    @trace_span
    async def get_usage_info(self, user_id: str) -> UsageInfo:
        """Usage summary for the current month with a warning when close to the cap."""
        now = self.clock.now()
        period_start, period_end = month_bounds(now)

        usage = await self._current_usage(user_id)
        used = usage.hours_used if usage else 0.0
        files = usage.files_processed if usage else 0

        subscription, plan = await self._resolve_plan(user_id)
        if plan is not None:
            limit = plan.hours_per_month
            plan_name = plan.name
            billing_interval = plan.billing_interval.value
        else:
            limit = FREE_TIER_HOURS_PER_MONTH
            plan_name = FREE_TIER_PLAN_NAME
            billing_interval = BillingInterval.FREE.value

        subscription_status = (
            subscription.status.value if subscription else SubscriptionStatus.ACTIVE.value
        )

        percentage = (used / limit * 100) if limit > 0 else 0.0

        return UsageInfo(
            limit_hours=limit,
            used_hours=used,
            remaining_hours=max(0.0, limit - used),
            percentage_used=percentage,
            is_over_limit=used > limit + FLOAT_TOLERANCE,
            files_processed=files,
            plan_name=plan_name,
            billing_interval=billing_interval,
            subscription_status=subscription_status,
            period_start=period_start,
            period_end=period_end,
            warning_message=build_warning_message(used, limit),
        )
