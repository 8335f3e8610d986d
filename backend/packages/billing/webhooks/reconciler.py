"""
Reconciles local subscription state with Stripe webhook events.

Stripe is the system of record. Events arrive at least once and in any
order, so every handler derives the target state from the event itself and
applies it idempotently: replaying an event leaves the store unchanged.
"""

from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from common.core.clock import Clock, get_clock
from common.core.exceptions import NotFoundError, PlanNotFoundError
from common.core.otel_axiom_exporter import get_logger, log_span_event, trace_span
from common.db.scoped import transaction
from packages.billing.models.domain.enums import (
    PaymentProvider,
    ReplacementReason,
    SubscriptionStatus,
)
from packages.billing.models.domain.plan import Plan
from packages.billing.models.domain.stripe_webhooks import (
    StripeCheckoutSessionData,
    StripeInvoiceData,
    StripeSubscriptionData,
    StripeWebhookPayload,
    StripeWebhookType,
)
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.billing.services.integrity_service import IntegrityService
from packages.billing.services.status_mapper import (
    extract_price,
    from_unix,
    map_provider_status,
    period_from_event,
)
from packages.billing.store.factory import get_subscription_store
from packages.billing.store.interface import SubscriptionStore

logger = get_logger(__name__)


class WebhookReconciler:
    """Applies Stripe events to the subscription store."""

    def __init__(
        self,
        store: Optional[SubscriptionStore] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store or get_subscription_store()
        self.clock = clock or get_clock()
        self.integrity = IntegrityService(store=self.store, clock=self.clock)

    @trace_span
    async def handle_event(self, payload: StripeWebhookPayload) -> None:
        """
        Route an event to its handler.

        Raises:
            MalformedEventError: the event lacks data needed to reconcile it
            PlanNotFoundError: the subscription's price maps to no plan
            NotFoundError: the owning user cannot be determined
        """
        event_type = payload.event_type()
        data = payload.data.object

        if event_type in (
            StripeWebhookType.SUBSCRIPTION_CREATED,
            StripeWebhookType.SUBSCRIPTION_UPDATED,
        ):
            await self._handle_subscription_upsert(data, from_unix(payload.created))
        elif event_type == StripeWebhookType.SUBSCRIPTION_DELETED:
            await self._handle_subscription_deleted(data)
        elif event_type == StripeWebhookType.INVOICE_PAYMENT_FAILED:
            await self._handle_invoice_payment_failed(data)
        elif event_type in (
            StripeWebhookType.INVOICE_PAID,
            StripeWebhookType.INVOICE_PAYMENT_SUCCEEDED,
        ):
            await self._handle_invoice_paid(data)
        elif event_type == StripeWebhookType.CHECKOUT_SESSION_COMPLETED:
            await self._handle_checkout_completed(data)
        else:
            logger.info(f"Unhandled Stripe webhook type: {payload.type}")

    async def _resolve_user_id(
        self, remote: StripeSubscriptionData, existing: Optional[Subscription]
    ) -> str:
        if existing is not None:
            return existing.user_id

        if remote.metadata.user_id:
            return remote.metadata.user_id

        if remote.customer:
            user_id = await self.store.get_user_id_for_customer(remote.customer)
            if user_id:
                return user_id

        raise NotFoundError(
            f"Cannot determine user for subscription {remote.id} (customer {remote.customer})"
        )

    async def _plan_for(self, remote: StripeSubscriptionData) -> Plan:
        price_id = extract_price(remote)
        plan = await self.store.get_plan_by_provider_price(price_id)
        if plan is None:
            raise PlanNotFoundError(price_id)
        return plan

    def _create_model(
        self, user_id: str, plan: Plan, remote: StripeSubscriptionData
    ) -> SubscriptionCreateModel:
        start, end = period_from_event(remote, self.clock.now())
        return SubscriptionCreateModel(
            user_id=user_id,
            plan_id=plan.id,
            provider_subscription_id=remote.id,
            provider_price_id=plan.provider_price_id,
            payment_provider=PaymentProvider.STRIPE,
            status=map_provider_status(remote.status),
            current_period_start=start,
            current_period_end=end,
            cancel_at_period_end=remote.cancel_at_period_end,
            canceled_at=from_unix(remote.canceled_at),
            trial_end=from_unix(remote.trial_end),
        )

    def _metadata_update(self, remote: StripeSubscriptionData) -> dict:
        start, end = period_from_event(remote, self.clock.now())
        return dict(
            status=map_provider_status(remote.status),
            current_period_start=start,
            current_period_end=end,
            cancel_at_period_end=remote.cancel_at_period_end,
            canceled_at=from_unix(remote.canceled_at),
            trial_end=from_unix(remote.trial_end),
        )

    @staticmethod
    def _is_reactivation(
        existing: Subscription, event_time: Optional[datetime]
    ) -> bool:
        """
        True when an un-cancelled event supersedes the local pending change.

        Events generated before the change was requested are stale echoes.
        """
        if not existing.cancel_at_period_end:
            return False
        if existing.pending_change_requested_at is None:
            return True
        return event_time is not None and event_time > existing.pending_change_requested_at

    async def _handle_subscription_upsert(
        self, data: dict, event_time: Optional[datetime] = None
    ) -> None:
        """
        customer.subscription.created / updated.

        While cancellation is scheduled only status and dates are synced:
        the user keeps the plan they paid for until the deletion event.
        """
        remote = StripeSubscriptionData.model_validate(data)
        existing = await self.store.find_by_provider_id(remote.id)

        if existing is None and map_provider_status(remote.status) == SubscriptionStatus.CANCELLED:
            # Late delivery for a subscription whose deletion was already applied
            logger.info(
                f"Ignoring cancelled subscription {remote.id} with no local record",
                extra={"provider_subscription_id": remote.id, "customer": remote.customer},
            )
            return

        user_id = await self._resolve_user_id(remote, existing)

        if remote.metadata.user_id and remote.customer:
            await self.store.link_customer(remote.metadata.user_id, remote.customer)

        if remote.cancel_at_period_end and existing is not None:
            await self.store.update_subscription(
                existing.id, SubscriptionUpdateModel(**self._metadata_update(remote))
            )
            log_span_event(
                "Synced subscription scheduled for cancellation",
                {"user_id": user_id, "subscription_id": existing.id},
            )
            return

        plan = await self._plan_for(remote)

        if existing is None:
            async with transaction():
                await self.integrity.ensure_single_active(
                    user_id, ReplacementReason.REPLACED_BY_NEW_SUBSCRIPTION
                )
                created = await self.store.create_subscription(
                    self._create_model(user_id, plan, remote)
                )
            log_span_event(
                f"Created subscription {created.id} on plan {plan.id}",
                {"user_id": user_id, "provider_subscription_id": remote.id},
            )
            return

        if existing.plan_id != plan.id:
            async with transaction():
                await self.store.save_to_history(existing, ReplacementReason.PLAN_CHANGE)
                await self.store.delete_subscription(existing.id)
                created = await self.store.create_subscription(
                    self._create_model(user_id, plan, remote)
                )
            log_span_event(
                f"Replaced subscription {existing.id} with {created.id}: {existing.plan_id} -> {plan.id}",
                {"user_id": user_id, "provider_subscription_id": remote.id},
            )
            return

        fields = self._metadata_update(remote)
        if not existing.has_pending_change():
            update = SubscriptionUpdateModel(**fields)
        elif self._is_reactivation(existing, event_time):
            update = SubscriptionUpdateModel.clearing_pending_change(**fields)
            logger.info(
                f"Scheduled change to {existing.pending_plan_id} withdrawn for subscription {existing.id}",
                extra={"user_id": user_id, "subscription_id": existing.id},
            )
        else:
            # Predates the scheduled change: keep the local cancel flag too
            fields.pop("cancel_at_period_end")
            update = SubscriptionUpdateModel(**fields)

        await self.store.update_subscription(existing.id, update)
        log_span_event(
            "Synced subscription metadata",
            {"user_id": user_id, "subscription_id": existing.id},
        )

    async def _handle_subscription_deleted(self, data: dict) -> None:
        """
        customer.subscription.deleted: the paid period is over.

        A pending paid plan becomes a local record with no remote
        subscription; a pending free plan (or none) leaves the user on the
        free tier with no record at all. The local record is not billed and
        does not renew: it lasts one month unless checkout replaces it.
        """
        remote = StripeSubscriptionData.model_validate(data)
        existing = await self.store.find_by_provider_id(remote.id)
        if existing is None:
            logger.info(
                f"Deleted subscription {remote.id} not found locally, nothing to do",
                extra={"provider_subscription_id": remote.id},
            )
            return

        if not existing.pending_plan_id:
            async with transaction():
                await self.store.save_to_history(
                    existing, ReplacementReason.SUBSCRIPTION_CANCELLED
                )
                await self.store.delete_subscription(existing.id)
            log_span_event(
                f"Subscription {existing.id} cancelled",
                {"user_id": existing.user_id, "plan_id": existing.plan_id},
            )
            return

        pending_plan = await self.store.get_plan(existing.pending_plan_id)
        async with transaction():
            await self.store.save_to_history(
                existing, ReplacementReason.PERIOD_END_CANCELLATION_COMPLETED
            )
            await self.store.delete_subscription(existing.id)

            if pending_plan is not None and not pending_plan.is_free:
                await self.integrity.ensure_single_active(
                    existing.user_id, ReplacementReason.REPLACED_BY_NEW_SUBSCRIPTION
                )
                now = self.clock.now()
                local = await self.store.create_subscription(
                    SubscriptionCreateModel(
                        user_id=existing.user_id,
                        plan_id=pending_plan.id,
                        provider_price_id=pending_plan.provider_price_id,
                        payment_provider=PaymentProvider.NONE,
                        status=SubscriptionStatus.ACTIVE,
                        current_period_start=now,
                        current_period_end=now + relativedelta(months=1),
                    )
                )
                logger.warning(
                    f"User {existing.user_id} now holds unbilled plan {pending_plan.id} "
                    f"until {local.current_period_end.isoformat()}",
                    extra={
                        "user_id": existing.user_id,
                        "subscription_id": local.id,
                        "plan_id": pending_plan.id,
                    },
                )

        log_span_event(
            f"Pending change completed for user {existing.user_id}: {existing.plan_id} -> {existing.pending_plan_id}",
            {
                "user_id": existing.user_id,
                "from_plan": existing.plan_id,
                "to_plan": existing.pending_plan_id,
            },
        )

    async def _handle_invoice_payment_failed(self, data: dict) -> None:
        invoice = StripeInvoiceData.model_validate(data)
        if not invoice.subscription:
            logger.info(f"Failed invoice {invoice.id} has no subscription")
            return

        existing = await self.store.find_by_provider_id(invoice.subscription)
        if existing is None:
            logger.info(
                f"Failed invoice {invoice.id} references unknown subscription {invoice.subscription}"
            )
            return

        await self.store.update_subscription(
            existing.id, SubscriptionUpdateModel(status=SubscriptionStatus.PAST_DUE)
        )
        logger.warning(
            f"Payment failed for subscription {existing.id}, marked past_due",
            extra={
                "user_id": existing.user_id,
                "subscription_id": existing.id,
                "invoice_id": invoice.id,
                "amount_due": invoice.amount_due,
            },
        )

    async def _handle_invoice_paid(self, data: dict) -> None:
        invoice = StripeInvoiceData.model_validate(data)
        logger.info(
            f"Invoice {invoice.id} paid",
            extra={
                "invoice_id": invoice.id,
                "provider_subscription_id": invoice.subscription,
                "amount_paid": invoice.amount_paid,
            },
        )

    async def _handle_checkout_completed(self, data: dict) -> None:
        """The subscription itself arrives via customer.subscription.created."""
        session = StripeCheckoutSessionData.model_validate(data)
        if session.metadata.user_id and session.customer:
            await self.store.link_customer(session.metadata.user_id, session.customer)

        logger.info(
            f"Checkout session {session.id} completed",
            extra={
                "session_id": session.id,
                "user_id": session.metadata.user_id,
                "provider_subscription_id": session.subscription,
            },
        )
