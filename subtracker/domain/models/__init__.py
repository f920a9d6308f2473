"""Domain models for the subscription tracker."""

from .subscription import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    MAX_STORED_INTEGER,
    CostFilter,
    Subscription,
    SubscriptionFilter,
)

__all__ = [
    "CostFilter",
    "DEFAULT_PAGE_LIMIT",
    "MAX_PAGE_LIMIT",
    "MAX_STORED_INTEGER",
    "Subscription",
    "SubscriptionFilter",
]
