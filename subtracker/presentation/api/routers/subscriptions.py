from __future__ import annotations

import logging
from typing import Any, Dict, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ....application.services.subscription_service import SubscriptionService
from ....core.dependencies import get_subscription_service
from ....domain.errors import InvalidInputError, NotFoundError, StoreFailure, SubscriptionError
from ....domain.models import Subscription
from ...api.schemas.subscription import (
    CostResponse,
    SubscriptionCreatePayload,
    SubscriptionListResponse,
    SubscriptionResponse,
    SubscriptionUpdatePayload,
)

router = APIRouter(prefix="/api/v1/subscriptions", tags=["Subscriptions"])

logger = logging.getLogger(__name__)


@router.get("", response_model=SubscriptionListResponse, response_model_exclude_none=True)
async def list_subscriptions(
    user_id: Optional[str] = Query(default=None),
    service_name: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None, description="1..500, defaults to 50"),
    offset: Optional[str] = Query(default=None),
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    try:
        items = service.list_subscriptions(
            user_id=user_id,
            service_name=service_name,
            limit=limit,
            offset=offset,
        )
    except SubscriptionError as exc:
        _raise_http(exc, "list")
    return {"data": [_serialize_subscription(item) for item in items], "total": len(items)}


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SubscriptionResponse,
    response_model_exclude_none=True,
)
async def create_subscription(
    payload: SubscriptionCreatePayload,
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    try:
        subscription = service.create_subscription(
            service_name=payload.service_name,
            price=payload.price,
            user_id=payload.user_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
        )
    except SubscriptionError as exc:
        _raise_http(exc, "create")
    return _serialize_subscription(subscription)


@router.get("/cost", response_model=CostResponse)
async def calculate_cost(
    start_period: Optional[str] = Query(default=None, description="MM-YYYY"),
    end_period: Optional[str] = Query(default=None, description="MM-YYYY"),
    user_id: Optional[str] = Query(default=None),
    service_name: Optional[str] = Query(default=None),
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    try:
        total = service.calculate_cost(
            start_period=start_period,
            end_period=end_period,
            user_id=user_id,
            service_name=service_name,
        )
    except SubscriptionError as exc:
        _raise_http(exc, "calculate cost")
    return {"total": total}


@router.get("/{subscription_id}", response_model=SubscriptionResponse, response_model_exclude_none=True)
async def get_subscription(
    subscription_id: str,
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    try:
        subscription = service.get_subscription(subscription_id)
    except SubscriptionError as exc:
        _raise_http(exc, "get")
    return _serialize_subscription(subscription)


@router.put("/{subscription_id}", response_model=SubscriptionResponse, response_model_exclude_none=True)
async def update_subscription(
    subscription_id: str,
    payload: SubscriptionUpdatePayload,
    service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, Any]:
    try:
        subscription = service.update_subscription(
            subscription_id,
            payload.model_dump(exclude_unset=True),
        )
    except SubscriptionError as exc:
        _raise_http(exc, "update")
    return _serialize_subscription(subscription)


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    subscription_id: str,
    service: SubscriptionService = Depends(get_subscription_service),
) -> None:
    try:
        service.delete_subscription(subscription_id)
    except SubscriptionError as exc:
        _raise_http(exc, "delete")


def _raise_http(exc: SubscriptionError, action: str) -> NoReturn:
    if isinstance(exc, InvalidInputError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found") from exc
    if isinstance(exc, StoreFailure):
        logger.error("Failed to %s subscription", action, extra={"error": str(exc)})
    else:
        logger.exception("Unexpected error while trying to %s subscription", action)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"failed to {action}",
    ) from exc


def _serialize_subscription(subscription: Subscription) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": str(subscription.id),
        "service_name": subscription.service_name,
        "price": subscription.price,
        "user_id": str(subscription.user_id),
        "start_date": subscription.start_date,
        "created_at": subscription.created_at,
        "updated_at": subscription.updated_at,
    }
    if subscription.end_date is not None:
        payload["end_date"] = subscription.end_date
    return payload
