"""
Domain models for Stripe webhook payloads.

Strongly-typed Pydantic models for the parts of Stripe events the reconciler
reads. Unknown fields are ignored.
"""

from typing import Optional, Any, List
from enum import Enum
from pydantic import BaseModel, Field


class StripeWebhookType(str, Enum):
    """Stripe webhook event types we act on."""

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"

    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"

    INVOICE_PAID = "invoice.paid"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


class StripeMetadata(BaseModel):
    """Stripe metadata (we store user_id here at checkout)."""

    user_id: Optional[str] = None
    plan_id: Optional[str] = None


class StripePrice(BaseModel):
    id: str


class StripeSubscriptionItem(BaseModel):
    id: Optional[str] = None
    price: Optional[StripePrice] = None
    # Newer API versions report the billing period per item
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None


class StripeSubscriptionItems(BaseModel):
    data: List[StripeSubscriptionItem] = Field(default_factory=list)


class StripeSubscriptionData(BaseModel):
    """
    Stripe subscription object.

    Status stays a plain string: Stripe adds statuses over time and the
    mapper folds anything unknown into active.
    """

    id: str
    customer: Optional[str] = None
    status: Optional[str] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[int] = None
    trial_end: Optional[int] = None
    items: StripeSubscriptionItems = Field(default_factory=StripeSubscriptionItems)
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)

    def period_bounds(self) -> tuple[Optional[int], Optional[int]]:
        """Billing period as unix seconds, falling back to the first item."""
        start, end = self.current_period_start, self.current_period_end
        if self.items.data:
            item = self.items.data[0]
            start = start if start is not None else item.current_period_start
            end = end if end is not None else item.current_period_end
        return start, end


class StripeInvoiceData(BaseModel):
    """Stripe invoice object."""

    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    status: Optional[str] = None
    amount_due: int = 0
    amount_paid: int = 0
    currency: Optional[str] = None


class StripeCheckoutSessionData(BaseModel):
    """Stripe checkout session object."""

    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    payment_status: Optional[str] = None
    status: Optional[str] = None
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)


class StripeEventData(BaseModel):
    """Stripe event data wrapper."""

    object: dict[str, Any]  # The actual object (subscription, invoice, etc.)


class StripeWebhookPayload(BaseModel):
    """
    Complete Stripe webhook payload.

    `type` is kept as a string so unknown event types parse and can be
    acknowledged without handling.
    """

    id: str
    type: str
    data: StripeEventData
    created: int
    livemode: bool = False

    def event_type(self) -> Optional[StripeWebhookType]:
        try:
            return StripeWebhookType(self.type)
        except ValueError:
            return None
