from __future__ import annotations

import uuid
from typing import List, Protocol

from ..models import CostFilter, Subscription, SubscriptionFilter


class SubscriptionRepository(Protocol):
    """Abstract storage for subscription records.

    Lookups by id raise ``NotFoundError`` when no row matches; driver errors
    surface as ``StoreFailure`` or one of its subclasses.
    """

    def create(self, subscription: Subscription) -> None:
        ...

    def get_by_id(self, subscription_id: uuid.UUID) -> Subscription:
        ...

    def update(self, subscription: Subscription) -> None:
        ...

    def delete(self, subscription_id: uuid.UUID) -> None:
        ...

    def list(self, filters: SubscriptionFilter) -> List[Subscription]:
        ...

    def calculate_cost(self, filters: CostFilter) -> int:
        ...

    def close(self) -> None:
        ...
