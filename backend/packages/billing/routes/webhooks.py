"""
Webhook endpoints for billing events.

Public endpoints (no auth required) for Stripe webhooks.
"""

from fastapi import APIRouter, Depends, Request

from packages.billing.webhooks.reconciler import WebhookReconciler
from packages.billing.webhooks.stripe_webhook import (
    get_webhook_reconciler,
    handle_stripe_webhook,
)

router = APIRouter()


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    reconciler: WebhookReconciler = Depends(get_webhook_reconciler),
) -> dict[str, str]:
    """
    Receive subscription lifecycle and invoice events from Stripe.

    Signature is checked against the configured webhook secret before the
    event reaches the reconciler.
    """
    return await handle_stripe_webhook(request, reconciler)
