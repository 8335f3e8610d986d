"""Domain models for billing."""

from packages.billing.models.domain.enums import (
    SubscriptionStatus,
    BillingInterval,
    PaymentProvider,
    ReplacementReason,
    PendingChangeReason,
    ChangeType,
)
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.billing.models.domain.plan import Plan, PlanCreateModel
from packages.billing.models.domain.customer import PaymentCustomer
from packages.billing.models.domain.history import (
    HistoryEntry,
    HistoryEntryCreateModel,
)
from packages.billing.models.domain.usage import (
    UsageRecord,
    UsageDecision,
    UsageInfo,
)
from packages.billing.models.domain.plan_change import (
    ChangePlanResult,
    CancelSubscriptionResult,
    CleanupResult,
)

__all__ = [
    # Enums
    "SubscriptionStatus",
    "BillingInterval",
    "PaymentProvider",
    "ReplacementReason",
    "PendingChangeReason",
    "ChangeType",
    # Subscription
    "Subscription",
    "SubscriptionCreateModel",
    "SubscriptionUpdateModel",
    # Plans
    "Plan",
    "PlanCreateModel",
    "PaymentCustomer",
    # History
    "HistoryEntry",
    "HistoryEntryCreateModel",
    # Usage
    "UsageRecord",
    "UsageDecision",
    "UsageInfo",
    # Results
    "ChangePlanResult",
    "CancelSubscriptionResult",
    "CleanupResult",
]
