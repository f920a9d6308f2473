"""Subscription domain model and the query filters built around it."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 500
# Largest integer the store can hold (signed 64-bit).
MAX_STORED_INTEGER = 2**63 - 1


@dataclass(slots=True)
class Subscription:
    """
    A user's recurring payment for an external service.

    Attributes:
        id: Server-generated identifier, immutable after creation
        service_name: Name of the subscribed service (1..255 characters)
        price: Monthly price, a positive integer
        user_id: Owning user, opaque to this service
        start_date: First billable month (day is always 1)
        end_date: Last billable month, or None when open-ended
        created_at: Creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    id: uuid.UUID
    service_name: str
    price: int
    user_id: uuid.UUID
    start_date: date
    end_date: Optional[date]
    created_at: datetime
    updated_at: datetime

    def is_active_during(self, start_period: date, end_period: date) -> bool:
        """Check if the active window overlaps ``[start_period, end_period]``."""
        if self.start_date > end_period:
            return False
        return self.end_date is None or self.end_date >= start_period

    def __repr__(self) -> str:
        return f"<Subscription id={self.id} service={self.service_name} user_id={self.user_id}>"


@dataclass(slots=True)
class SubscriptionFilter:
    user_id: Optional[uuid.UUID] = None
    service_name: Optional[str] = None
    limit: int = DEFAULT_PAGE_LIMIT
    offset: int = 0


@dataclass(slots=True)
class CostFilter:
    start_period: date
    end_period: date
    user_id: Optional[uuid.UUID] = None
    service_name: Optional[str] = None
