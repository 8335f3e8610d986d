"""
Stripe implementation of the payment gateway.
"""

from typing import Any, Optional
import stripe

from common.core.config import settings
from common.core.exceptions import GatewayError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData
from packages.billing.providers.payment.interface import PaymentGatewayInterface

logger = get_logger(__name__)


def _to_subscription_data(subscription: Any) -> StripeSubscriptionData:
    """Convert an SDK StripeObject (or plain dict) into our typed model."""
    data = subscription.to_dict() if hasattr(subscription, "to_dict") else dict(subscription)
    return StripeSubscriptionData.model_validate(data)


class StripePaymentGateway(PaymentGatewayInterface):
    """Stripe-based gateway implementation."""

    def __init__(self):
        """Initialize Stripe with API credentials."""
        stripe.api_key = settings.stripe_secret_key

    @trace_span
    async def get_subscription(self, subscription_id: str) -> StripeSubscriptionData:
        try:
            subscription = stripe.Subscription.retrieve(subscription_id)
        except stripe.StripeError as e:
            logger.error(
                f"Failed to retrieve subscription: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise GatewayError(f"Failed to retrieve subscription {subscription_id}: {e}") from e

        return _to_subscription_data(subscription)

    @trace_span
    async def update_subscription(
        self,
        subscription_id: str,
        price_id: Optional[str] = None,
        cancel_at_period_end: Optional[bool] = None,
    ) -> StripeSubscriptionData:
        """
        Update a Stripe subscription.

        Price swaps replace the first item in place and invoice the prorated
        difference straight away; `error_if_incomplete` makes a declined card
        fail the call instead of leaving the subscription half-upgraded.
        """
        params: dict[str, Any] = {}

        try:
            if price_id is not None:
                # Get current subscription to find the item ID
                subscription = stripe.Subscription.retrieve(subscription_id)
                item_id = subscription["items"]["data"][0]["id"]

                params["items"] = [{"id": item_id, "price": price_id}]
                params["proration_behavior"] = "always_invoice"
                params["payment_behavior"] = "error_if_incomplete"

            if cancel_at_period_end is not None:
                params["cancel_at_period_end"] = cancel_at_period_end

            updated = stripe.Subscription.modify(subscription_id, **params)

        except (stripe.StripeError, LookupError) as e:
            logger.error(
                f"Failed to update subscription: {str(e)}",
                extra={
                    "subscription_id": subscription_id,
                    "price_id": price_id,
                    "cancel_at_period_end": cancel_at_period_end,
                    "error": str(e),
                },
            )
            raise GatewayError(f"Failed to update subscription {subscription_id}: {e}") from e

        logger.info(
            "Updated Stripe subscription",
            extra={
                "subscription_id": subscription_id,
                "price_id": price_id,
                "cancel_at_period_end": cancel_at_period_end,
            },
        )
        return _to_subscription_data(updated)

    @trace_span
    async def cancel_subscription(self, subscription_id: str) -> None:
        """Cancel Stripe subscription."""
        try:
            stripe.Subscription.cancel(subscription_id)
        except stripe.StripeError as e:
            logger.error(
                f"Failed to cancel subscription: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise GatewayError(f"Failed to cancel subscription {subscription_id}: {e}") from e

        logger.info(
            "Cancelled Stripe subscription",
            extra={"subscription_id": subscription_id},
        )

    @trace_span
    async def health_check(self) -> bool:
        """Check Stripe health."""
        try:
            # Try to retrieve account to verify API key works
            stripe.Account.retrieve()
            return True
        except stripe.StripeError as e:
            logger.error(f"Payment health check failed: {e}")
            return False
