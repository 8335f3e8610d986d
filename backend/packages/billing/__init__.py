"""
Billing package - keeps each user's current plan in step with Stripe.

Stripe is the system of record and reports changes through webhooks, which
the reconciler applies to the local store. Monthly usage limits are checked
locally against the user's plan.
"""
