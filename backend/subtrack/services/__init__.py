"""Service layer encapsulating business logic for API routers."""

from .cost_aggregation import (
    AggregationUnavailableError,
    CostQuery,
    CostQueryError,
    InvalidOwnerIdError,
    InvalidSnapshotError,
    InvertedWindowError,
    SubscriptionSnapshot,
    build_cost_query,
    compute_total_cost,
)
from .periods import InvalidPeriodFormat, InvalidPeriodMonth, Period, PeriodError
from .subscriptions import SubscriptionService, SubscriptionServiceError

__all__ = [
    "AggregationUnavailableError",
    "CostQuery",
    "CostQueryError",
    "InvalidOwnerIdError",
    "InvalidSnapshotError",
    "InvertedWindowError",
    "SubscriptionSnapshot",
    "build_cost_query",
    "compute_total_cost",
    "InvalidPeriodFormat",
    "InvalidPeriodMonth",
    "Period",
    "PeriodError",
    "SubscriptionService",
    "SubscriptionServiceError",
]
