"""
Service for user-initiated plan changes and cancellations.

Upgrades take effect immediately and are invoiced straight away. Downgrades
and cancellations are deferred to the end of the paid period: the provider
subscription is set to cancel at period end, the user keeps the current
plan, and the deletion webhook later swaps in the pending plan.
"""

from typing import Optional

from common.core.clock import Clock, get_clock
from common.core.exceptions import (
    FreePlanChangeError,
    GatewayError,
    IntegrityWarning,
    NoActiveSubscriptionError,
    PlanNotFoundError,
    ValidationError,
)
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.enums import ChangeType, PendingChangeReason
from packages.billing.models.domain.plan import Plan
from packages.billing.models.domain.plan_change import (
    CancelSubscriptionResult,
    ChangePlanResult,
)
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionUpdateModel,
)
from packages.billing.providers.payment.factory import get_payment_gateway
from packages.billing.providers.payment.interface import PaymentGatewayInterface
from packages.billing.services.status_mapper import from_unix
from packages.billing.store.factory import get_subscription_store
from packages.billing.store.interface import SubscriptionStore

logger = get_logger(__name__)


def classify_change(current: Plan, target: Plan) -> ChangeType:
    """Strictly more expensive is an upgrade; everything else is a downgrade."""
    if target.price_cents > current.price_cents:
        return ChangeType.UPGRADE
    return ChangeType.DOWNGRADE


class PlanChangeService:
    """Orchestrates plan changes between the gateway and the local store."""

    def __init__(
        self,
        store: Optional[SubscriptionStore] = None,
        gateway: Optional[PaymentGatewayInterface] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store or get_subscription_store()
        self.gateway = gateway or get_payment_gateway()
        self.clock = clock or get_clock()

    async def _get_active_or_raise(self, user_id: str) -> Subscription:
        subscription = await self.store.find_active(user_id)
        if subscription is None:
            raise NoActiveSubscriptionError(user_id)
        return subscription

    async def _get_plan_or_raise(self, plan_id: str) -> Plan:
        plan = await self.store.get_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        return plan

    def _require_remote(self, subscription: Subscription) -> str:
        if not subscription.provider_subscription_id:
            raise ValidationError(
                "Subscription is not linked to a payment provider subscription"
            )
        return subscription.provider_subscription_id

    async def _apply_locally(
        self, subscription: Subscription, update: SubscriptionUpdateModel, action: str
    ) -> None:
        """
        Write the local half of a change the provider already accepted.

        A failure here leaves local state behind the provider. The webhook
        for the same change brings it back in line, so it is logged rather
        than surfaced to the caller.
        """
        try:
            await self.store.update_subscription(subscription.id, update)
        except Exception as e:
            warning = IntegrityWarning(
                f"{action} accepted by provider but local update failed for "
                f"subscription {subscription.id}: {e}"
            )
            logger.error(
                str(warning),
                extra={
                    "user_id": subscription.user_id,
                    "subscription_id": subscription.id,
                    "provider_subscription_id": subscription.provider_subscription_id,
                    "error": str(e),
                },
            )

    def _effective_date(
        self, remote: Optional[StripeSubscriptionData], subscription: Subscription
    ):
        if remote is not None:
            _, end = remote.period_bounds()
            remote_end = from_unix(end)
            if remote_end is not None:
                return remote_end
        return subscription.current_period_end

    @trace_span
    async def change_plan(self, user_id: str, target_plan_id: str) -> ChangePlanResult:
        """
        Move a user to another paid plan.

        Raises:
            NoActiveSubscriptionError: user has nothing to change
            PlanNotFoundError: current or target plan missing
            FreePlanChangeError: target is free (cancellation handles that)
            ValidationError: target equals current, or no remote subscription
            GatewayError: provider rejected the change; nothing was written
        """
        subscription = await self._get_active_or_raise(user_id)
        current_plan = await self._get_plan_or_raise(subscription.plan_id)
        target_plan = await self._get_plan_or_raise(target_plan_id)

        if target_plan.price_cents == 0:
            raise FreePlanChangeError(target_plan.id)

        if target_plan.id == current_plan.id:
            raise ValidationError(f"Already on plan {current_plan.id}")

        remote_id = self._require_remote(subscription)
        change_type = classify_change(current_plan, target_plan)

        logger.info(
            f"Changing plan for user {user_id}: {current_plan.id} -> {target_plan.id} ({change_type.value})",
            extra={
                "user_id": user_id,
                "subscription_id": subscription.id,
                "from_plan": current_plan.id,
                "to_plan": target_plan.id,
                "change_type": change_type.value,
            },
        )

        if change_type == ChangeType.UPGRADE:
            return await self._upgrade(subscription, remote_id, target_plan)
        return await self._downgrade(subscription, remote_id, target_plan)

    async def _upgrade(
        self, subscription: Subscription, remote_id: str, target_plan: Plan
    ) -> ChangePlanResult:
        if not target_plan.provider_price_id:
            raise ValidationError(f"Plan {target_plan.id} has no provider price")

        # An upgrade supersedes any scheduled downgrade or cancellation
        await self.gateway.update_subscription(
            remote_id,
            price_id=target_plan.provider_price_id,
            cancel_at_period_end=False if subscription.cancel_at_period_end else None,
        )

        await self._apply_locally(
            subscription,
            SubscriptionUpdateModel.clearing_pending_change(
                plan_id=target_plan.id,
                provider_price_id=target_plan.provider_price_id,
                cancel_at_period_end=False,
            ),
            "Upgrade",
        )

        return ChangePlanResult(
            success=True,
            message=f"Upgraded to {target_plan.name}. The prorated difference has been invoiced.",
            change_type=ChangeType.UPGRADE,
            new_plan_id=target_plan.id,
            effective_date="immediately",
            pending_change=False,
        )

    async def _downgrade(
        self, subscription: Subscription, remote_id: str, target_plan: Plan
    ) -> ChangePlanResult:
        remote = await self.gateway.update_subscription(
            remote_id, cancel_at_period_end=True
        )
        effective = self._effective_date(remote, subscription)

        await self._apply_locally(
            subscription,
            SubscriptionUpdateModel(
                cancel_at_period_end=True,
                pending_plan_id=target_plan.id,
                pending_change_reason=PendingChangeReason.PLAN_DOWNGRADE,
                pending_change_effective_date=effective,
                pending_change_requested_at=self.clock.now(),
            ),
            "Downgrade",
        )

        return ChangePlanResult(
            success=True,
            message=(
                f"Your plan will change to {target_plan.name} on {effective.date().isoformat()}. "
                f"You keep your current benefits until then."
            ),
            change_type=ChangeType.DOWNGRADE,
            new_plan_id=target_plan.id,
            effective_date=effective.isoformat(),
            pending_change=True,
        )

    @trace_span
    async def cancel_subscription(self, user_id: str) -> CancelSubscriptionResult:
        """
        Schedule a move to the free plan at the end of the paid period.

        Calling it again while the cancellation is already scheduled does not
        touch the provider.
        """
        subscription = await self._get_active_or_raise(user_id)
        free_plan = await self.store.get_free_plan()
        free_plan_id = free_plan.id if free_plan else None

        already_scheduled = (
            subscription.cancel_at_period_end
            and subscription.pending_change_reason
            == PendingChangeReason.CANCELLATION_TO_FREE_PLAN.value
        )
        if already_scheduled:
            logger.info(
                f"Cancellation already scheduled for user {user_id}",
                extra={"user_id": user_id, "subscription_id": subscription.id},
            )
            return CancelSubscriptionResult(
                success=True,
                message="Your subscription is already scheduled to end at the close of the billing period.",
                cancellation_scheduled=True,
                period_end_date=subscription.pending_change_effective_date
                or subscription.current_period_end,
            )

        remote_id = self._require_remote(subscription)
        try:
            remote = await self.gateway.update_subscription(
                remote_id, cancel_at_period_end=True
            )
        except GatewayError:
            logger.error(
                f"Failed to schedule cancellation for user {user_id}",
                extra={"user_id": user_id, "subscription_id": subscription.id},
            )
            raise

        effective = self._effective_date(remote, subscription)

        await self._apply_locally(
            subscription,
            SubscriptionUpdateModel(
                cancel_at_period_end=True,
                pending_plan_id=free_plan_id,
                pending_change_reason=PendingChangeReason.CANCELLATION_TO_FREE_PLAN,
                pending_change_effective_date=effective,
                pending_change_requested_at=self.clock.now(),
            ),
            "Cancellation",
        )

        logger.info(
            f"Scheduled cancellation for user {user_id} at {effective.isoformat()}",
            extra={
                "user_id": user_id,
                "subscription_id": subscription.id,
                "pending_plan_id": free_plan_id,
            },
        )

        return CancelSubscriptionResult(
            success=True,
            message=(
                f"Your subscription will end on {effective.date().isoformat()}. "
                f"You keep your current benefits until then."
            ),
            cancellation_scheduled=True,
            period_end_date=effective,
        )
