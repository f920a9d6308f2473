"""Pydantic schemas for subscription API endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, StrictInt


class SubscriptionCreatePayload(BaseModel):
    """Request schema for creating a subscription. Months use ``MM-YYYY``."""

    service_name: str = Field(..., examples=["Netflix"])
    price: StrictInt = Field(..., examples=[999])
    user_id: str = Field(..., examples=["60601fee-2bf1-4721-ae6f-7636e79a0cba"])
    start_date: str = Field(..., examples=["01-2024"])
    end_date: Optional[str] = Field(default=None, examples=["12-2024"])


class SubscriptionUpdatePayload(BaseModel):
    """Request schema for a partial update.

    Only fields present in the body are applied; ``end_date: ""`` clears the
    stored end date.
    """

    service_name: Optional[str] = None
    price: Optional[StrictInt] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class SubscriptionResponse(BaseModel):
    id: str
    service_name: str
    price: int
    user_id: str
    start_date: date
    end_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime


class SubscriptionListResponse(BaseModel):
    data: List[SubscriptionResponse]
    total: int


class CostResponse(BaseModel):
    total: int
