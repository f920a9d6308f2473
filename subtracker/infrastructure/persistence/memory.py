import threading
import uuid
from dataclasses import replace
from typing import Dict, List

from ...domain.errors import ConstraintViolation, DuplicateKey, NotFoundError, StoreFailure
from ...domain.models import MAX_STORED_INTEGER, CostFilter, Subscription, SubscriptionFilter
from ...domain.ports.persistence import SubscriptionRepository


class InMemorySubscriptionRepository(SubscriptionRepository):
    """Dictionary-backed repository honouring the same constraints as the SQL table."""

    def __init__(self) -> None:
        self._items: Dict[uuid.UUID, Subscription] = {}
        self._lock = threading.Lock()

    def close(self) -> None:
        with self._lock:
            self._items.clear()

    def create(self, subscription: Subscription) -> None:
        self._check_constraints(subscription)
        with self._lock:
            if subscription.id in self._items:
                raise DuplicateKey(f"subscription {subscription.id} already exists")
            self._items[subscription.id] = replace(subscription)

    def get_by_id(self, subscription_id: uuid.UUID) -> Subscription:
        with self._lock:
            stored = self._items.get(subscription_id)
        if stored is None:
            raise NotFoundError(subscription_id)
        return replace(stored)

    def update(self, subscription: Subscription) -> None:
        with self._lock:
            stored = self._items.get(subscription.id)
            if stored is None:
                raise NotFoundError(subscription.id)
            self._check_constraints(subscription)
            self._items[subscription.id] = replace(
                stored,
                service_name=subscription.service_name,
                price=subscription.price,
                start_date=subscription.start_date,
                end_date=subscription.end_date,
                updated_at=subscription.updated_at,
            )

    def delete(self, subscription_id: uuid.UUID) -> None:
        with self._lock:
            if self._items.pop(subscription_id, None) is None:
                raise NotFoundError(subscription_id)

    def list(self, filters: SubscriptionFilter) -> List[Subscription]:
        with self._lock:
            items = [
                item
                for item in self._items.values()
                if (filters.user_id is None or item.user_id == filters.user_id)
                and (filters.service_name is None or item.service_name == filters.service_name)
            ]
        items.sort(key=lambda item: item.created_at, reverse=True)
        if filters.offset > 0:
            items = items[filters.offset:]
        if filters.limit > 0:
            items = items[: filters.limit]
        return [replace(item) for item in items]

    def calculate_cost(self, filters: CostFilter) -> int:
        with self._lock:
            return sum(
                item.price
                for item in self._items.values()
                if item.is_active_during(filters.start_period, filters.end_period)
                and (filters.user_id is None or item.user_id == filters.user_id)
                and (filters.service_name is None or item.service_name == filters.service_name)
            )

    @staticmethod
    def _check_constraints(subscription: Subscription) -> None:
        if subscription.price > MAX_STORED_INTEGER:
            raise StoreFailure("price does not fit in a 64-bit integer")
        if subscription.price <= 0:
            raise ConstraintViolation("price must be positive")
        if not 1 <= len(subscription.service_name) <= 255:
            raise ConstraintViolation("service_name must be 1..255 characters")
        if subscription.end_date is not None and subscription.end_date < subscription.start_date:
            raise ConstraintViolation("end_date must not precede start_date")
