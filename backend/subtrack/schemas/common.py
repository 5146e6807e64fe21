"""Shared schema definitions."""

from __future__ import annotations

from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Page-number based listing envelope."""

    items: Sequence[T]
    total: int = Field(..., ge=0)
    page_number: int = Field(..., ge=1)
    size: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, items: Sequence[T], *, total: int, page_number: int, size: int):
        total_pages = (total + size - 1) // size
        return cls(
            items=items,
            total=total,
            page_number=page_number,
            size=size,
            total_pages=total_pages,
            has_next=page_number < total_pages,
            has_prev=page_number > 1 and total_pages > 0,
        )


class MessageResponse(BaseModel):
    message: str
