from __future__ import annotations

import logging
import re
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, List, Mapping, Optional

from ...domain.errors import InvalidInputError
from ...domain.models import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    MAX_STORED_INTEGER,
    CostFilter,
    Subscription,
    SubscriptionFilter,
)
from ...domain.ports.persistence import SubscriptionRepository

logger = logging.getLogger(__name__)

_MONTH_PATTERN = re.compile(r"([0-9]{2})-([0-9]{4})")
_INTEGER_PATTERN = re.compile(r"[-+]?[0-9]{1,19}")
MAX_SERVICE_NAME_LENGTH = 255


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_month(value: Any, field: str = "date") -> date:
    """Parse ``MM-YYYY`` into the first day of that month."""
    match = _MONTH_PATTERN.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise _reject(field, value)
    month, year = int(match.group(1)), int(match.group(2))
    try:
        return date(year, month, 1)
    except ValueError as exc:
        raise _reject(field, value) from exc


def parse_uuid(value: Any, field: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        raise _reject(field, value)
    try:
        return uuid.UUID(value)
    except ValueError as exc:
        raise _reject(field, value) from exc


def _parse_int(value: Optional[str]) -> Optional[int]:
    """Parse a plain decimal integer that fits the store, or return ``None``."""
    if not value or not _INTEGER_PATTERN.fullmatch(value):
        return None
    number = int(value)
    if not -MAX_STORED_INTEGER - 1 <= number <= MAX_STORED_INTEGER:
        return None
    return number


def parse_limit(value: Optional[str]) -> int:
    """Lenient pagination: anything outside ``(0, MAX_PAGE_LIMIT]`` falls back to the default."""
    limit = _parse_int(value)
    if limit is not None and 0 < limit <= MAX_PAGE_LIMIT:
        return limit
    return DEFAULT_PAGE_LIMIT


def parse_offset(value: Optional[str]) -> int:
    offset = _parse_int(value)
    return offset if offset is not None and offset >= 0 else 0


def _reject(field: str, value: Any, message: Optional[str] = None) -> InvalidInputError:
    logger.warning("Rejected %s=%r", field, value, extra={"field": field, "value": repr(value)})
    return InvalidInputError(field, value, message)


class SubscriptionService:
    """Validates subscription requests and dispatches them to the repository."""

    def __init__(
        self,
        repository: SubscriptionRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repository = repository
        self._clock = clock

    # CRUD operations ------------------------------------------------------
    def create_subscription(
        self,
        *,
        service_name: Any,
        price: Any,
        user_id: Any,
        start_date: Any,
        end_date: Any = None,
    ) -> Subscription:
        name = self._validate_service_name(service_name)
        amount = self._validate_price(price)
        owner = parse_uuid(user_id, "user_id")
        start = parse_month(start_date, "start_date")
        end = parse_month(end_date, "end_date") if end_date is not None else None
        self._validate_date_range(start, end)

        now = self._clock()
        subscription = Subscription(
            id=uuid.uuid4(),
            service_name=name,
            price=amount,
            user_id=owner,
            start_date=start,
            end_date=end,
            created_at=now,
            updated_at=now,
        )
        self._repository.create(subscription)
        logger.info("Subscription %s created for user %s", subscription.id, owner)
        return subscription

    def get_subscription(self, subscription_id: Any) -> Subscription:
        return self._repository.get_by_id(parse_uuid(subscription_id))

    def update_subscription(self, subscription_id: Any, changes: Mapping[str, Any]) -> Subscription:
        """Apply a partial update.

        ``changes`` holds only the fields present in the request. A present
        ``None`` is treated like an absent field, while an empty ``end_date``
        clears the stored end date.
        """
        identifier = parse_uuid(subscription_id)

        # Validate before reading so malformed payloads never touch the store.
        service_name = changes.get("service_name")
        if service_name is not None:
            service_name = self._validate_service_name(service_name)
        price = changes.get("price")
        if price is not None:
            price = self._validate_price(price)
        start_raw = changes.get("start_date")
        start = parse_month(start_raw, "start_date") if start_raw is not None else None
        end_raw = changes.get("end_date")
        clear_end = end_raw == ""
        end = parse_month(end_raw, "end_date") if end_raw is not None and not clear_end else None

        subscription = self._repository.get_by_id(identifier)
        if service_name is not None:
            subscription.service_name = service_name
        if price is not None:
            subscription.price = price
        if start is not None:
            subscription.start_date = start
        if clear_end:
            subscription.end_date = None
        elif end is not None:
            subscription.end_date = end
        self._validate_date_range(subscription.start_date, subscription.end_date)
        subscription.updated_at = self._clock()

        self._repository.update(subscription)
        logger.info("Subscription %s updated (%s)", identifier, ", ".join(sorted(changes)) or "no fields")
        return subscription

    def delete_subscription(self, subscription_id: Any) -> None:
        identifier = parse_uuid(subscription_id)
        self._repository.delete(identifier)
        logger.info("Subscription %s deleted", identifier)

    # Queries --------------------------------------------------------------
    def list_subscriptions(
        self,
        *,
        user_id: Optional[str] = None,
        service_name: Optional[str] = None,
        limit: Optional[str] = None,
        offset: Optional[str] = None,
    ) -> List[Subscription]:
        filters = SubscriptionFilter(
            user_id=parse_uuid(user_id, "user_id") if user_id else None,
            service_name=service_name or None,
            limit=parse_limit(limit),
            offset=parse_offset(offset),
        )
        return self._repository.list(filters)

    def calculate_cost(
        self,
        *,
        start_period: Optional[str],
        end_period: Optional[str],
        user_id: Optional[str] = None,
        service_name: Optional[str] = None,
    ) -> int:
        if not start_period or not end_period:
            raise _reject(
                "start_period" if not start_period else "end_period",
                start_period if not start_period else end_period,
                "start_period and end_period are required",
            )
        filters = CostFilter(
            start_period=parse_month(start_period, "start_period"),
            end_period=parse_month(end_period, "end_period"),
            user_id=parse_uuid(user_id, "user_id") if user_id else None,
            service_name=service_name or None,
        )
        return self._repository.calculate_cost(filters)

    # Validation helpers ---------------------------------------------------
    @staticmethod
    def _validate_service_name(value: Any) -> str:
        if not isinstance(value, str) or not value or len(value) > MAX_SERVICE_NAME_LENGTH:
            raise _reject("service_name", value)
        return value

    @staticmethod
    def _validate_price(value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 < value <= MAX_STORED_INTEGER:
            raise _reject("price", value)
        return value

    @staticmethod
    def _validate_date_range(start: date, end: Optional[date]) -> None:
        if end is not None and end < start:
            raise _reject("end_date", end.isoformat(), "end_date must not precede start_date")
