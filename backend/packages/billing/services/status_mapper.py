"""
Translation of provider subscription data into local terms.

Pure functions: no I/O, no clock reads beyond the `now` they are handed.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from common.core.constants import MIN_VALID_TIMESTAMP_YEAR
from common.core.exceptions import MalformedEventError
from packages.billing.models.domain.enums import SubscriptionStatus
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData
from packages.billing.models.domain.subscription import Subscription

_MIN_VALID_TIMESTAMP = datetime(MIN_VALID_TIMESTAMP_YEAR, 1, 1, tzinfo=timezone.utc)

_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "canceled": SubscriptionStatus.CANCELLED,
    "past_due": SubscriptionStatus.PAST_DUE,
    "trialing": SubscriptionStatus.TRIALING,
}


def map_provider_status(raw_status: Optional[str]) -> SubscriptionStatus:
    """
    Map a Stripe subscription status to ours.

    Anything we don't recognise (incomplete, unpaid, paused, statuses Stripe
    adds later) maps to ACTIVE so a paying user is never locked out by an
    unexpected value.
    """
    return _STATUS_MAP.get(raw_status or "", SubscriptionStatus.ACTIVE)


def from_unix(timestamp: Optional[int]) -> Optional[datetime]:
    """Unix seconds to aware UTC datetime; missing or non-positive -> None."""
    if not timestamp or timestamp <= 0:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _is_valid(value: Optional[datetime]) -> bool:
    return value is not None and value >= _MIN_VALID_TIMESTAMP


def fix_timestamps(
    start: Optional[datetime], end: Optional[datetime], now: datetime
) -> Tuple[datetime, datetime]:
    """
    Repair a billing period so that start < end and both are plausible.

    Start before 2000 (or missing) becomes `now`. End before 2000, missing,
    or not after start becomes start + 1 calendar month.
    """
    if not _is_valid(start):
        start = now

    if not _is_valid(end) or end <= start:
        end = start + relativedelta(months=1)

    return start, end


def needs_timestamp_repair(start: Optional[datetime], end: Optional[datetime]) -> bool:
    return not _is_valid(start) or not _is_valid(end) or end <= start


def period_from_event(
    subscription: StripeSubscriptionData, now: datetime
) -> Tuple[datetime, datetime]:
    """Validated billing period of a provider subscription."""
    start, end = subscription.period_bounds()
    return fix_timestamps(from_unix(start), from_unix(end), now)


def extract_price(subscription: StripeSubscriptionData) -> str:
    """
    Price id of the subscription's first item.

    Raises:
        MalformedEventError: no items, or the first item has no price
    """
    if not subscription.items.data:
        raise MalformedEventError("subscription has no items")

    item = subscription.items.data[0]
    if item.price is None or not item.price.id:
        raise MalformedEventError("subscription item has no price")

    return item.price.id


def validate_subscription(subscription: Subscription) -> List[str]:
    """Basic sanity checks; returns human-readable problems (empty if fine)."""
    errors = []

    if not subscription.user_id:
        errors.append("user ID is required")

    if not subscription.plan_id:
        errors.append("plan ID is required")

    if not subscription.status:
        errors.append("status is required")

    if subscription.current_period_end <= subscription.current_period_start:
        errors.append("period end must be after period start")

    return errors
