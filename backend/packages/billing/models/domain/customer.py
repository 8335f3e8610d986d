"""Domain model for the user <-> payment customer link."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class PaymentCustomer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    provider_customer_id: str
    payment_provider: str = "stripe"
    created_at: Optional[datetime] = None
