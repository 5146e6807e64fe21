from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..services.periods import Period
from .common import PaginatedResponse

MONTH_FIELD_DESCRIPTION = "Calendar month in MM-YYYY format"
# Largest value a BIGINT price column can hold.
MAX_PRICE = 2**63 - 1


def _normalize_month(value: object) -> object:
    """Accept ``MM-YYYY`` text or dates and return canonical ``MM-YYYY`` text."""

    if value is None:
        return None
    if isinstance(value, date):
        return str(Period.from_date(value))
    if isinstance(value, str):
        return str(Period.parse(value))
    return value


def _strip_text(value: object) -> object:
    return value.strip() if isinstance(value, str) else value


def _check_range(start: Optional[str], end: Optional[str]) -> None:
    if start and end and Period.parse(end) < Period.parse(start):
        raise ValueError("start_date cannot be after end_date")


class SubscriptionBase(BaseModel):
    service_name: str = Field(..., min_length=1, max_length=150)
    price: int = Field(..., gt=0, le=MAX_PRICE, description="Cost per active month")
    user_id: UUID
    start_date: str = Field(..., description=MONTH_FIELD_DESCRIPTION, examples=["07-2025"])
    end_date: Optional[str] = Field(default=None, description=MONTH_FIELD_DESCRIPTION)

    @field_validator("service_name", mode="before")
    @classmethod
    def _strip_service_name(cls, value: object) -> object:
        return _strip_text(value)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _validate_month(cls, value: object) -> object:
        return _normalize_month(value)

    @model_validator(mode="after")
    def _validate_range(self) -> "SubscriptionBase":
        _check_range(self.start_date, self.end_date)
        return self


class SubscriptionCreate(SubscriptionBase):
    """Payload used to register a new subscription."""


class SubscriptionUpdate(SubscriptionBase):
    """Payload replacing every field of a subscription."""


class SubscriptionPatch(BaseModel):
    """Partial update; only the fields sent by the client are applied."""

    service_name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    price: Optional[int] = Field(default=None, gt=0, le=MAX_PRICE)
    user_id: Optional[UUID] = None
    start_date: Optional[str] = Field(default=None, description=MONTH_FIELD_DESCRIPTION)
    end_date: Optional[str] = Field(default=None, description=MONTH_FIELD_DESCRIPTION)

    @field_validator("service_name", mode="before")
    @classmethod
    def _strip_service_name(cls, value: object) -> object:
        return _strip_text(value)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _validate_month(cls, value: object) -> object:
        return _normalize_month(value)

    @model_validator(mode="after")
    def _validate_range(self) -> "SubscriptionPatch":
        _check_range(self.start_date, self.end_date)
        return self


class SubscriptionRead(BaseModel):
    id: int
    service_name: str
    price: int
    user_id: UUID
    start_date: str
    end_date: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _render_month(cls, value: object) -> object:
        return _normalize_month(value)


class SubscriptionListResponse(PaginatedResponse[SubscriptionRead]):
    pass


class SubscriptionCreated(BaseModel):
    id: int


class SubscriptionCostTotal(BaseModel):
    total_sum: int = Field(..., ge=0)
