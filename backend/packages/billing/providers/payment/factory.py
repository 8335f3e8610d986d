"""
Factory for getting the payment gateway instance.
"""

from packages.billing.providers.payment.interface import PaymentGatewayInterface
from packages.billing.providers.payment.stripe_payment import StripePaymentGateway


def get_payment_gateway() -> PaymentGatewayInterface:
    """
    Get the payment gateway.

    Stripe is the only provider; services depend on the interface so tests
    can hand in a fake.
    """
    return StripePaymentGateway()
