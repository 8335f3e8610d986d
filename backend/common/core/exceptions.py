class AppException(Exception):
    """Base application exception."""

    pass


class NotFoundError(AppException):
    """Resource not found exception."""

    pass


class NoActiveSubscriptionError(NotFoundError):
    """The user has no active subscription to operate on."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"No active subscription found for user {user_id}")


class PlanNotFoundError(NotFoundError):
    """A referenced plan (by id or provider price) does not exist."""

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Subscription plan not found: {reference}")


class ValidationError(AppException):
    """Validation error exception."""

    pass


class FreePlanChangeError(ValidationError):
    """Plan changes to a zero-price plan must go through cancellation."""

    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(
            f"Plan {plan_id} is free - use the cancellation endpoint to move to the free plan"
        )


class MalformedEventError(ValidationError):
    """Provider event is missing data required to reconcile it."""

    pass


class GatewayError(AppException):
    """Payment provider call failed. Local state was not modified."""

    pass


class IntegrityWarning(UserWarning):
    """
    Local state diverged from the provider after the provider call succeeded.

    Logged, never raised to callers: the next webhook delivery repairs it.
    """

    pass
