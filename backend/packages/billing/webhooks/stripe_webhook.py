"""
Stripe webhook handler for subscription events.

Verifies the signature, parses the event and hands it to the reconciler.
Responses drive Stripe's retry behaviour: 4xx for events that can never
succeed, 5xx for failures worth retrying, 200 otherwise.
"""

from typing import Optional

import stripe
from fastapi import Request, HTTPException, status
from pydantic import ValidationError

from common.core.config import settings
from common.core.exceptions import MalformedEventError, NotFoundError
from common.core.otel_axiom_exporter import get_logger
from packages.billing.models.domain.stripe_webhooks import StripeWebhookPayload
from packages.billing.webhooks.reconciler import WebhookReconciler

logger = get_logger(__name__)


def get_webhook_reconciler() -> WebhookReconciler:
    return WebhookReconciler()


async def handle_stripe_webhook(
    request: Request, reconciler: Optional[WebhookReconciler] = None
) -> dict[str, str]:
    """
    Handle incoming webhook from Stripe.

    Validates webhook signature and routes to the reconciler.
    """
    reconciler = reconciler or get_webhook_reconciler()

    try:
        if not settings.stripe_webhook_secret:
            logger.error("Stripe webhook received but no webhook secret is configured")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Webhook secret not configured",
            )

        # Get raw body for signature verification
        payload_bytes = await request.body()
        sig_header = request.headers.get("stripe-signature")

        if not sig_header:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing stripe-signature header",
            )

        # Verify webhook signature
        try:
            event = stripe.Webhook.construct_event(
                payload_bytes, sig_header, settings.stripe_webhook_secret
            )
        except stripe.SignatureVerificationError as e:
            logger.error(f"Stripe webhook signature verification failed: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature"
            )
        except ValueError as e:
            logger.error(f"Stripe webhook body is not valid JSON: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
            )

        # Parse into typed model
        event_data = event.to_dict() if hasattr(event, "to_dict") else dict(event)
        payload = StripeWebhookPayload.model_validate(event_data)

        logger.info(
            f"Received Stripe webhook: {payload.type}",
            extra={
                "event_id": payload.id,
                "event_type": payload.type,
                "livemode": payload.livemode,
            },
        )

        try:
            await reconciler.handle_event(payload)
        except NotFoundError as e:
            # Retrying won't make the user or plan appear; acknowledge it
            logger.warning(
                f"Stripe webhook {payload.id} references unknown data: {str(e)}",
                extra={"event_id": payload.id, "event_type": payload.type},
            )

        return {"status": "success"}

    except (ValidationError, MalformedEventError) as e:
        logger.error(
            f"Invalid Stripe webhook payload: {str(e)}",
            extra={"error": str(e)},
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Failed to process Stripe webhook: {str(e)}", extra={"error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        )
