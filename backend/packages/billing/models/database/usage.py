"""
Database entity for monthly usage.
"""

from sqlalchemy import Column, String, Float, Integer, UniqueConstraint
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType, UTCDateTime


class MonthlyUsageEntity(Base):
    """
    Processed hours per user per calendar month.

    Rows are only inserted or incremented.
    """

    __tablename__ = "monthly_usage"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(255), nullable=False, index=True)
    year_month = Column(String(7), nullable=False)  # YYYY-MM

    hours_used = Column(Float, nullable=False, default=0.0)
    files_processed = Column(Integer, nullable=False, default=0)
    last_processing_date = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "year_month", name="uq_monthly_usage_user_month"),
    )
