"""
Database entity linking users to payment provider customers.
"""

from sqlalchemy import Column, String
from sqlalchemy.sql import func

from common.db.base import Base, UTCDateTime


class PaymentCustomerEntity(Base):
    __tablename__ = "payment_customers"

    user_id = Column(String(255), primary_key=True)
    provider_customer_id = Column(String(255), nullable=False, unique=True, index=True)
    payment_provider = Column(String(50), nullable=False, server_default="stripe")

    created_at = Column(UTCDateTime, server_default=func.now())
