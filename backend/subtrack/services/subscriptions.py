"""Business logic for subscription records and their cost totals."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from .. import models, schemas
from .cost_aggregation import (
    AggregationUnavailableError,
    CostQuery,
    SubscriptionSnapshot,
    compute_total_cost,
)
from .periods import Period

LOGGER = logging.getLogger(__name__)


class SubscriptionServiceError(RuntimeError):
    """Raised when a subscription change would break a record invariant."""


def _month_to_date(value: Optional[str]) -> Optional[date]:
    return Period.parse(value).to_date() if value else None


def to_snapshot(record: models.Subscription) -> SubscriptionSnapshot:
    owner = record.user_id
    if not isinstance(owner, uuid.UUID):
        owner = uuid.UUID(str(owner))
    return SubscriptionSnapshot(
        id=record.id,
        service_name=record.service_name,
        price=int(record.price),
        owner_id=owner,
        start=Period.from_date(record.start_date),
        end=Period.from_date(record.end_date) if record.end_date else None,
    )


class SubscriptionService:
    """Encapsulates CRUD operations and cost totals for subscriptions."""

    @staticmethod
    def list_subscriptions(
        db: Session,
        *,
        page_number: int = 1,
        size: int = 10,
    ) -> Tuple[Iterable[models.Subscription], int]:
        query = db.query(models.Subscription)
        total = query.count()
        offset = (max(page_number, 1) - 1) * max(size, 1)
        items = (
            query.order_by(models.Subscription.id.asc())
            .offset(offset)
            .limit(max(size, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_subscription(db: Session, subscription_id: int) -> Optional[models.Subscription]:
        return (
            db.query(models.Subscription)
            .filter(models.Subscription.id == subscription_id)
            .first()
        )

    @staticmethod
    def create_subscription(
        db: Session, data: schemas.SubscriptionCreate
    ) -> models.Subscription:
        record = models.Subscription(
            service_name=data.service_name.strip(),
            price=data.price,
            user_id=data.user_id,
            start_date=_month_to_date(data.start_date),
            end_date=_month_to_date(data.end_date),
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        LOGGER.info("Subscription %s created for user %s", record.id, record.user_id)
        return record

    @staticmethod
    def replace_subscription(
        db: Session,
        record: models.Subscription,
        data: schemas.SubscriptionUpdate,
    ) -> models.Subscription:
        record.service_name = data.service_name.strip()
        record.price = data.price
        record.user_id = data.user_id
        record.start_date = _month_to_date(data.start_date)
        record.end_date = _month_to_date(data.end_date)
        db.add(record)
        db.commit()
        db.refresh(record)
        LOGGER.info("Subscription %s updated", record.id)
        return record

    @staticmethod
    def patch_subscription(
        db: Session,
        record: models.Subscription,
        data: schemas.SubscriptionPatch,
    ) -> models.Subscription:
        update_data = data.model_dump(exclude_unset=True)
        if "service_name" in update_data and update_data["service_name"]:
            update_data["service_name"] = update_data["service_name"].strip()
        for field in ("start_date", "end_date"):
            if field in update_data:
                update_data[field] = _month_to_date(update_data[field])

        if "start_date" in update_data and update_data["start_date"] is None:
            raise SubscriptionServiceError("start_date cannot be removed")
        for field in ("service_name", "price", "user_id"):
            if field in update_data and update_data[field] is None:
                raise SubscriptionServiceError(f"{field} cannot be null")

        start = update_data.get("start_date", record.start_date)
        end = update_data.get("end_date", record.end_date)
        if end is not None and end < start:
            raise SubscriptionServiceError("start_date cannot be after end_date")

        for field, value in update_data.items():
            setattr(record, field, value)
        db.add(record)
        db.commit()
        db.refresh(record)
        LOGGER.info("Subscription %s patched (%s)", record.id, ", ".join(sorted(update_data)))
        return record

    @staticmethod
    def delete_subscription(db: Session, record: models.Subscription) -> None:
        subscription_id = record.id
        db.delete(record)
        db.commit()
        LOGGER.info("Subscription %s deleted", subscription_id)

    @staticmethod
    def _candidate_query(db: Session, cost_query: CostQuery) -> Query:
        window_start = cost_query.window_start.to_date()
        window_end = cost_query.window_end.to_date()
        query = db.query(models.Subscription).filter(
            models.Subscription.start_date <= window_end,
            or_(
                models.Subscription.end_date.is_(None),
                models.Subscription.end_date >= window_start,
            ),
        )
        if cost_query.owner_id is not None:
            query = query.filter(models.Subscription.user_id == cost_query.owner_id)
        return query.order_by(models.Subscription.id.asc())

    @staticmethod
    def fetch_candidates(db: Session, cost_query: CostQuery) -> List[SubscriptionSnapshot]:
        """Load the subscriptions that may contribute to ``cost_query``."""

        try:
            records = SubscriptionService._candidate_query(db, cost_query).all()
            return [to_snapshot(record) for record in records]
        except (SQLAlchemyError, ValueError) as exc:
            LOGGER.error("Failed to load subscriptions for cost total: %s", exc)
            raise AggregationUnavailableError("Cannot calculate sum of subscriptions") from exc

    @staticmethod
    def total_cost(db: Session, cost_query: CostQuery) -> int:
        candidates = SubscriptionService.fetch_candidates(db, cost_query)
        total = compute_total_cost(candidates, cost_query)
        LOGGER.debug(
            "Computed total %s over %s candidates for %s..%s",
            total,
            len(candidates),
            cost_query.window_start,
            cost_query.window_end,
        )
        return total
