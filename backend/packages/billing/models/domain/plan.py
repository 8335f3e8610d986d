"""Domain model for catalog plans."""

from typing import Optional
from pydantic import BaseModel, ConfigDict

from packages.billing.models.domain.enums import BillingInterval


class Plan(BaseModel):
    """A purchasable plan. Read-only as far as reconciliation is concerned."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    provider_price_id: Optional[str] = None
    billing_interval: BillingInterval
    hours_per_month: float
    price_cents: int = 0
    display_order: int = 0
    is_active: bool = True

    @property
    def is_free(self) -> bool:
        return self.billing_interval == BillingInterval.FREE or self.price_cents == 0

    def price_formatted(self) -> str:
        return f"${self.price_cents / 100:,.2f}"


class PlanCreateModel(BaseModel):
    """Model for inserting catalog rows (seeding, tests)."""

    id: str
    name: str
    provider_price_id: Optional[str] = None
    billing_interval: str
    hours_per_month: float
    price_cents: int = 0
    display_order: int = 0
    is_active: bool = True
