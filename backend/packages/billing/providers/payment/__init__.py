"""Payment gateway - the remote subscription system of record."""

from packages.billing.providers.payment.interface import PaymentGatewayInterface
from packages.billing.providers.payment.factory import get_payment_gateway

__all__ = [
    "PaymentGatewayInterface",
    "get_payment_gateway",
]
