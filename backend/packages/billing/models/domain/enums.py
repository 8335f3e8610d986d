"""
Billing enums - strongly typed enumerations for subscription and billing states.
"""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    Local subscription status.

    Provider statuses outside this set collapse to ACTIVE (see status_mapper).
    """

    ACTIVE = "active"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"
    TRIALING = "trialing"

    def has_access(self) -> bool:
        """Check if this status allows billable processing."""
        return self in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


class BillingInterval(str, Enum):
    """Plan billing cadence. FREE plans have no provider price."""

    FREE = "free"
    MONTH = "month"
    YEAR = "year"


class PaymentProvider(str, Enum):
    """Supported payment providers."""

    STRIPE = "stripe"
    NONE = "none"  # Local-only records with no remote subscription


class ReplacementReason(str, Enum):
    """Why a subscription row was retired into history."""

    PLAN_CHANGE = "plan_change"
    REPLACED_BY_NEW_SUBSCRIPTION = "replaced_by_new_subscription"
    PERIOD_END_CANCELLATION_COMPLETED = "period_end_cancellation_completed"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    DUPLICATE_CLEANUP = "duplicate_cleanup"


class PendingChangeReason(str, Enum):
    """Why a plan change is waiting for the period end."""

    PLAN_DOWNGRADE = "plan_downgrade"
    CANCELLATION_TO_FREE_PLAN = "cancellation_to_free_plan"


class ChangeType(str, Enum):
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
