"""
Interface for payment gateways.

Abstracts the remote subscription API away from a specific platform so
services can be tested against a fake.
"""

from abc import ABC, abstractmethod
from typing import Optional

from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData


class PaymentGatewayInterface(ABC):
    """Abstract interface for the remote subscription system of record."""

    @abstractmethod
    async def get_subscription(self, subscription_id: str) -> StripeSubscriptionData:
        """
        Fetch a subscription from the provider.

        Raises:
            GatewayError: the provider call failed
        """
        pass

    @abstractmethod
    async def update_subscription(
        self,
        subscription_id: str,
        price_id: Optional[str] = None,
        cancel_at_period_end: Optional[bool] = None,
    ) -> StripeSubscriptionData:
        """
        Modify a subscription.

        Args:
            subscription_id: Provider subscription ID
            price_id: Swap the (single) item to this price, invoicing the
                prorated difference immediately
            cancel_at_period_end: Schedule or unschedule cancellation at
                the end of the current period

        Returns:
            The subscription as the provider reports it after the change

        Raises:
            GatewayError: the provider call failed; nothing was changed
        """
        pass

    @abstractmethod
    async def cancel_subscription(self, subscription_id: str) -> None:
        """Cancel a subscription immediately."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the payment backend is available and healthy.

        Returns:
            True if healthy, False otherwise
        """
        pass
