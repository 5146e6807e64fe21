"""Expose Pydantic schemas for convenient imports."""

from .common import MessageResponse, PaginatedResponse
from .subscription import (
    SubscriptionBase,
    SubscriptionCostTotal,
    SubscriptionCreate,
    SubscriptionCreated,
    SubscriptionListResponse,
    SubscriptionPatch,
    SubscriptionRead,
    SubscriptionUpdate,
)

__all__ = [
    "MessageResponse",
    "PaginatedResponse",
    "SubscriptionBase",
    "SubscriptionCostTotal",
    "SubscriptionCreate",
    "SubscriptionCreated",
    "SubscriptionListResponse",
    "SubscriptionPatch",
    "SubscriptionRead",
    "SubscriptionUpdate",
]
