"""
Database entities for subscriptions and their history.
"""

from sqlalchemy import Column, String, Boolean, ForeignKey, Index
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType, UTCDateTime


class SubscriptionEntity(Base):
    """
    Current subscription of a user.

    No unique constraint on user_id: single-active is maintained by the
    services, and the duplicate cleanup repairs any drift.
    """

    __tablename__ = "current_user_subscriptions"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(255), nullable=False, index=True)
    plan_id = Column(
        String(100), ForeignKey("subscription_plans.id"), nullable=False, index=True
    )

    # External platform IDs
    provider_subscription_id = Column(
        String(255), nullable=True, unique=True, index=True
    )
    provider_price_id = Column(String(255), nullable=True)
    payment_provider = Column(String(50), nullable=False, server_default="stripe")

    status = Column(
        String(50), nullable=False, index=True
    )  # active, cancelled, past_due, trialing

    # Billing cycle
    current_period_start = Column(UTCDateTime, nullable=False)
    current_period_end = Column(UTCDateTime, nullable=False)

    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    canceled_at = Column(UTCDateTime, nullable=True)
    trial_end = Column(UTCDateTime, nullable=True)

    # Deferred plan change
    pending_plan_id = Column(
        String(100), ForeignKey("subscription_plans.id"), nullable=True
    )
    pending_change_effective_date = Column(UTCDateTime, nullable=True)
    pending_change_reason = Column(String(100), nullable=True)
    pending_change_requested_at = Column(UTCDateTime, nullable=True)

    # Standard timestamps
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_current_subscription_user_status", "user_id", "status"),
        Index("idx_current_subscription_period_end", "current_period_end"),
        {"sqlite_autoincrement": True},
    )


class SubscriptionHistoryEntity(Base):
    """
    Append-only audit trail of retired subscriptions.

    original_subscription_id is not a foreign key: the source row is deleted
    right after the snapshot is written.
    """

    __tablename__ = "subscription_history"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    original_subscription_id = Column(BigIntegerType, nullable=True)
    user_id = Column(String(255), nullable=False, index=True)
    plan_id = Column(String(100), nullable=False)

    provider_subscription_id = Column(String(255), nullable=True, index=True)
    provider_price_id = Column(String(255), nullable=True)
    payment_provider = Column(String(50), nullable=True)

    status = Column(String(50), nullable=False)
    current_period_start = Column(UTCDateTime, nullable=False)
    current_period_end = Column(UTCDateTime, nullable=False)
    canceled_at = Column(UTCDateTime, nullable=True)

    replacement_reason = Column(String(100), nullable=False, index=True)
    replaced_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_subscription_history_user_replaced", "user_id", "replaced_at"),
    )
