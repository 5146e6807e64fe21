"""Overlap selection and cost aggregation for subscription records.

Everything in this module is pure: functions only read the snapshots and the
query they receive, so they can be shared between request threads freely.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple

from .periods import Period, clip_lower, clip_upper, inclusive_month_span


class CostQueryError(ValueError):
    """Raised when cost query parameters are rejected before aggregation."""


class InvertedWindowError(CostQueryError):
    """The query window ends before it starts."""


class InvalidOwnerIdError(CostQueryError):
    """The owner identifier is not a valid UUID."""


class InvalidSnapshotError(ValueError):
    """A stored subscription breaks the record invariants."""


class AggregationUnavailableError(RuntimeError):
    """Raised when candidate subscriptions could not be loaded."""


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """Read-only view of a stored subscription."""

    id: int
    service_name: str
    price: int
    owner_id: uuid.UUID
    start: Period
    end: Optional[Period] = None

    def __post_init__(self) -> None:
        if self.price < 0:
            raise InvalidSnapshotError(f"Subscription {self.id} has negative price {self.price}")
        if self.end is not None and self.end < self.start:
            raise InvalidSnapshotError(
                f"Subscription {self.id} ends in {self.end} before it starts in {self.start}"
            )


@dataclass(frozen=True)
class CostQuery:
    """Window and optional filters of a total cost request."""

    window_start: Period
    window_end: Period
    owner_id: Optional[uuid.UUID] = None
    service_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.window_end < self.window_start:
            raise InvertedWindowError(
                f"Window start {self.window_start} cannot be after window end {self.window_end}"
            )
        if self.service_name is not None:
            normalized = self.service_name.strip()
            object.__setattr__(self, "service_name", normalized or None)


def build_cost_query(
    window_start: str,
    window_end: str,
    *,
    owner_id: Optional[str] = None,
    service_name: Optional[str] = None,
) -> CostQuery:
    """Validate raw request values and return a :class:`CostQuery`.

    Checks run in order: start format, end format, window ordering and owner
    identifier. Empty ``owner_id`` or ``service_name`` values mean no filter.
    """

    query = CostQuery(
        window_start=Period.parse(window_start),
        window_end=Period.parse(window_end),
        service_name=service_name,
    )

    if not owner_id:
        return query
    try:
        owner = uuid.UUID(owner_id)
    except (ValueError, AttributeError, TypeError) as exc:
        raise InvalidOwnerIdError(f"Invalid owner id {owner_id!r}") from exc
    return replace(query, owner_id=owner)


def effective_end(record: SubscriptionSnapshot, query: CostQuery) -> Period:
    """Open-ended subscriptions are billed up to the query horizon only."""

    return record.end if record.end is not None else query.window_end


def matches_filters(record: SubscriptionSnapshot, query: CostQuery) -> bool:
    if query.owner_id is not None and record.owner_id != query.owner_id:
        return False
    if query.service_name is not None:
        if record.service_name.strip().casefold() != query.service_name.casefold():
            return False
    return True


def overlaps_window(record: SubscriptionSnapshot, query: CostQuery) -> bool:
    return record.start <= query.window_end and effective_end(record, query) >= query.window_start


def is_selected(record: SubscriptionSnapshot, query: CostQuery) -> bool:
    return matches_filters(record, query) and overlaps_window(record, query)


def clipped_interval(
    record: SubscriptionSnapshot, query: CostQuery
) -> Optional[Tuple[Period, Period]]:
    """Return the part of the record's active interval inside the window.

    ``None`` is returned for records that are not selected by ``query``.
    """

    if not is_selected(record, query):
        return None
    start = clip_lower(record.start, query.window_start)
    end = clip_upper(effective_end(record, query), query.window_end)
    return start, end


def contribution(record: SubscriptionSnapshot, query: CostQuery) -> int:
    interval = clipped_interval(record, query)
    if interval is None:
        return 0
    return record.price * inclusive_month_span(*interval)


def compute_total_cost(records: Iterable[SubscriptionSnapshot], query: CostQuery) -> int:
    """Sum price times billed months over every selected record.

    An empty input or a query that selects nothing yields ``0``.
    """

    return sum(contribution(record, query) for record in records)
