"""API router for subscription records and cost totals."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..services import (
    AggregationUnavailableError,
    CostQueryError,
    PeriodError,
    SubscriptionService,
    SubscriptionServiceError,
    build_cost_query,
)

router = APIRouter()


def _get_or_404(db: Session, subscription_id: int) -> models.Subscription:
    record = SubscriptionService.get_subscription(db, subscription_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    return record


@router.get("/sub_sum", response_model=schemas.SubscriptionCostTotal)
def get_subscription_cost_total(
    db: Session = Depends(get_db),
    start_date: str = Query(..., alias="startDate", description="Window start (MM-YYYY)"),
    end_date: str = Query(..., alias="endDate", description="Window end (MM-YYYY)"),
    user_id: Optional[str] = Query(None, alias="userID", description="Filter by owner UUID"),
    service_name: Optional[str] = Query(
        None, alias="serviceName", description="Case-insensitive service name"
    ),
) -> schemas.SubscriptionCostTotal:
    """Return the amount billed inside the window, clipped per subscription."""

    try:
        cost_query = build_cost_query(
            start_date, end_date, owner_id=user_id, service_name=service_name
        )
    except (PeriodError, CostQueryError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        total = SubscriptionService.total_cost(db, cost_query)
    except AggregationUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return schemas.SubscriptionCostTotal(total_sum=total)


@router.get("", response_model=schemas.SubscriptionListResponse)
def list_subscriptions(
    db: Session = Depends(get_db),
    page_number: int = Query(1, ge=1, description="Page to return, starting at 1"),
    size: int = Query(10, ge=1, le=100, description="Records per page"),
) -> schemas.SubscriptionListResponse:
    items, total = SubscriptionService.list_subscriptions(db, page_number=page_number, size=size)
    return schemas.SubscriptionListResponse.build(
        [schemas.SubscriptionRead.model_validate(item) for item in items],
        total=total,
        page_number=page_number,
        size=size,
    )


@router.get("/{subscription_id}", response_model=schemas.SubscriptionRead)
def get_subscription(
    subscription_id: int, db: Session = Depends(get_db)
) -> schemas.SubscriptionRead:
    return _get_or_404(db, subscription_id)


@router.post("", response_model=schemas.SubscriptionCreated, status_code=status.HTTP_201_CREATED)
def create_subscription(
    payload: schemas.SubscriptionCreate, db: Session = Depends(get_db)
) -> schemas.SubscriptionCreated:
    record = SubscriptionService.create_subscription(db, payload)
    return schemas.SubscriptionCreated(id=record.id)


@router.put("/{subscription_id}", response_model=schemas.MessageResponse)
def replace_subscription(
    subscription_id: int,
    payload: schemas.SubscriptionUpdate,
    db: Session = Depends(get_db),
) -> schemas.MessageResponse:
    record = _get_or_404(db, subscription_id)
    SubscriptionService.replace_subscription(db, record, payload)
    return schemas.MessageResponse(message="subscription updated")


@router.patch("/{subscription_id}", response_model=schemas.MessageResponse)
def patch_subscription(
    subscription_id: int,
    payload: schemas.SubscriptionPatch,
    db: Session = Depends(get_db),
) -> schemas.MessageResponse:
    record = _get_or_404(db, subscription_id)
    try:
        SubscriptionService.patch_subscription(db, record, payload)
    except SubscriptionServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return schemas.MessageResponse(message="subscription updated")


@router.delete("/{subscription_id}", response_model=schemas.MessageResponse)
def delete_subscription(
    subscription_id: int, db: Session = Depends(get_db)
) -> schemas.MessageResponse:
    record = _get_or_404(db, subscription_id)
    SubscriptionService.delete_subscription(db, record)
    return schemas.MessageResponse(message="subscription deleted")
