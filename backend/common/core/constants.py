from enum import Enum


class Environment(str, Enum):
    """Environment profiles."""

    LOCAL = "local"
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


# Hour cap applied when a user has no active subscription at all.
# Independent of the catalog's free plan record.
FREE_TIER_HOURS_PER_MONTH = 0.5
FREE_TIER_PLAN_NAME = "Free"

# Timestamps earlier than this are treated as provider epoch artifacts.
MIN_VALID_TIMESTAMP_YEAR = 2000
