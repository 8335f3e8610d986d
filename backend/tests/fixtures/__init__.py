# Test data and fixtures

from datetime import datetime, timezone
from typing import Optional

from tests.fixtures.clock import FrozenClock  # noqa: F401


# Plan catalog used across tests
FREE_PLAN_DATA = {
    "id": "free",
    "name": "Free",
    "provider_price_id": None,
    "billing_interval": "free",
    "hours_per_month": 0.5,
    "price_cents": 0,
    "display_order": 0,
}

BASIC_PLAN_DATA = {
    "id": "basic_monthly",
    "name": "Basic",
    "provider_price_id": "price_basic_monthly",
    "billing_interval": "month",
    "hours_per_month": 10.0,
    "price_cents": 999,
    "display_order": 1,
}

PRO_PLAN_DATA = {
    "id": "pro_monthly",
    "name": "Pro",
    "provider_price_id": "price_pro_monthly",
    "billing_interval": "month",
    "hours_per_month": 25.0,
    "price_cents": 1999,
    "display_order": 2,
}

SAMPLE_PLANS = [FREE_PLAN_DATA, BASIC_PLAN_DATA, PRO_PLAN_DATA]

# 2026-03-10 12:00 UTC, well inside a billing month
SAMPLE_NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

# End of the paid period reported by the default gateway double
REMOTE_PERIOD_END = datetime(2026, 3, 30, 12, 0, tzinfo=timezone.utc)

SAMPLE_USER_ID = "user_123"
SAMPLE_CUSTOMER_ID = "cus_test123"
SAMPLE_SUBSCRIPTION_ID = "sub_test123"


def unix(moment: datetime) -> int:
    return int(moment.timestamp())


def stripe_subscription_object(
    subscription_id: str = SAMPLE_SUBSCRIPTION_ID,
    price_id: Optional[str] = "price_basic_monthly",
    status: str = "active",
    customer: Optional[str] = SAMPLE_CUSTOMER_ID,
    user_id: Optional[str] = SAMPLE_USER_ID,
    period_start: Optional[int] = None,
    period_end: Optional[int] = None,
    cancel_at_period_end: bool = False,
    canceled_at: Optional[int] = None,
    item_level_period: bool = False,
) -> dict:
    """Subscription object shaped like the `data.object` of a Stripe event."""
    start = period_start if period_start is not None else unix(SAMPLE_NOW)
    end = (
        period_end
        if period_end is not None
        else unix(datetime(2026, 4, 10, 12, 0, tzinfo=timezone.utc))
    )

    item = {"id": f"si_{subscription_id}"}
    if price_id is not None:
        item["price"] = {"id": price_id}
    if item_level_period:
        item["current_period_start"] = start
        item["current_period_end"] = end

    data = {
        "id": subscription_id,
        "object": "subscription",
        "customer": customer,
        "status": status,
        "cancel_at_period_end": cancel_at_period_end,
        "canceled_at": canceled_at,
        "items": {"object": "list", "data": [item]},
        "metadata": {"user_id": user_id} if user_id else {},
    }
    if not item_level_period:
        data["current_period_start"] = start
        data["current_period_end"] = end
    return data


def stripe_invoice_object(
    invoice_id: str = "in_test123",
    subscription: Optional[str] = SAMPLE_SUBSCRIPTION_ID,
    customer: Optional[str] = SAMPLE_CUSTOMER_ID,
) -> dict:
    return {
        "id": invoice_id,
        "object": "invoice",
        "customer": customer,
        "subscription": subscription,
        "status": "open",
        "amount_due": 999,
        "amount_paid": 0,
        "currency": "usd",
    }


def stripe_checkout_session_object(
    session_id: str = "cs_test123",
    customer: Optional[str] = SAMPLE_CUSTOMER_ID,
    user_id: Optional[str] = SAMPLE_USER_ID,
) -> dict:
    return {
        "id": session_id,
        "object": "checkout.session",
        "customer": customer,
        "subscription": SAMPLE_SUBSCRIPTION_ID,
        "payment_status": "paid",
        "status": "complete",
        "metadata": {"user_id": user_id} if user_id else {},
    }


def stripe_event(event_type: str, obj: dict, event_id: str = "evt_test123") -> dict:
    """Envelope of a Stripe webhook event."""
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": unix(SAMPLE_NOW),
        "livemode": False,
        "data": {"object": obj},
    }
