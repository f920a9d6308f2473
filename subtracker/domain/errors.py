from __future__ import annotations

from typing import Any


class SubscriptionError(Exception):
    """Base error for every failure surfaced by the subscription core."""


class InvalidInputError(SubscriptionError):
    """Raised when a request field is malformed or fails validation."""

    def __init__(self, field: str, value: Any, message: str | None = None) -> None:
        self.field = field
        self.value = value
        super().__init__(message or f"invalid {field}")


class NotFoundError(SubscriptionError):
    """Raised when no stored subscription matches the given id."""

    def __init__(self, subscription_id: Any) -> None:
        self.subscription_id = subscription_id
        super().__init__("subscription not found")


class StoreFailure(SubscriptionError):
    """Raised when the backing store fails in a way not otherwise classified."""


class ConstraintViolation(StoreFailure):
    """A table CHECK constraint rejected the row."""


class DuplicateKey(StoreFailure):
    """A row with the same primary key already exists."""
