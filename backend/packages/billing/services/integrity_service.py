"""
Service for keeping at most one active subscription per user.
"""

from typing import List, Optional

from common.core.clock import Clock, get_clock
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.enums import ReplacementReason
from packages.billing.models.domain.plan_change import CleanupResult
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionUpdateModel,
)
from packages.billing.services.status_mapper import (
    fix_timestamps,
    needs_timestamp_repair,
    validate_subscription,
)
from packages.billing.store.factory import get_subscription_store
from packages.billing.store.interface import SubscriptionStore

logger = get_logger(__name__)


class IntegrityService:
    def __init__(
        self,
        store: Optional[SubscriptionStore] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store or get_subscription_store()
        self.clock = clock or get_clock()

    @trace_span
    async def ensure_single_active(
        self,
        user_id: str,
        reason: ReplacementReason = ReplacementReason.REPLACED_BY_NEW_SUBSCRIPTION,
    ) -> List[Subscription]:
        """
        Retire every active subscription of a user.

        Called right before a new active row is created so the new row is
        the only one. Returns the retired rows.
        """
        retired = await self.store.deactivate_all(user_id, reason)
        if retired:
            logger.info(
                f"Retired {len(retired)} active subscription(s) for user {user_id}",
                extra={
                    "user_id": user_id,
                    "subscription_ids": [s.id for s in retired],
                    "reason": reason.value,
                },
            )
        return retired

    @trace_span
    async def cleanup_duplicate_subscriptions(self, user_id: str) -> CleanupResult:
        """
        Keep the active subscription with the latest period end, archive the
        rest, and repair implausible period bounds on the survivor.

        Running it twice is a no-op the second time.
        """
        removed = await self.store.cleanup_duplicates(user_id)
        survivor = await self.store.find_active(user_id)

        if survivor is not None:
            problems = validate_subscription(survivor)
            if problems:
                logger.warning(
                    f"Subscription {survivor.id} failed validation: {'; '.join(problems)}",
                    extra={"user_id": user_id, "subscription_id": survivor.id},
                )

        repaired = False
        if survivor is not None and needs_timestamp_repair(
            survivor.current_period_start, survivor.current_period_end
        ):
            start, end = fix_timestamps(
                survivor.current_period_start,
                survivor.current_period_end,
                self.clock.now(),
            )
            await self.store.update_subscription(
                survivor.id,
                SubscriptionUpdateModel(current_period_start=start, current_period_end=end),
            )
            repaired = True

        if removed or repaired:
            logger.info(
                f"Cleaned up subscriptions for user {user_id}",
                extra={
                    "user_id": user_id,
                    "kept_subscription_id": survivor.id if survivor else None,
                    "removed_subscription_ids": [s.id for s in removed],
                    "timestamps_repaired": repaired,
                },
            )

        return CleanupResult(
            user_id=user_id,
            kept_subscription_id=survivor.id if survivor else None,
            removed_subscription_ids=[s.id for s in removed],
            timestamps_repaired=repaired,
        )
