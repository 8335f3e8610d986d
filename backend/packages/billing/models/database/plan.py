"""
Database entity for the plan catalog.
"""

from sqlalchemy import Column, String, Boolean, Float, Integer
from sqlalchemy.sql import func

from common.db.base import Base, UTCDateTime


class PlanEntity(Base):
    """Plan catalog row. Maintained by operators, only read here."""

    __tablename__ = "subscription_plans"

    id = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False)
    provider_price_id = Column(String(255), nullable=True, unique=True, index=True)
    billing_interval = Column(String(20), nullable=False)  # free, month, year
    hours_per_month = Column(Float, nullable=False)
    price_cents = Column(Integer, nullable=False, default=0)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(UTCDateTime, server_default=func.now())
