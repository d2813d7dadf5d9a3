"""Common schemas used across the application.

Every endpoint answers with the same envelope:

    {
        "success": true,
        "message": "Filing created successfully",
        "data": {...},
        "timestamp": "2024-01-01T00:00:00Z"
    }

Wire keys are camelCase; request bodies accept camelCase or snake_case.
"""

import enum
import math
from datetime import datetime, timezone
from typing import Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class Period(str, enum.Enum):
    """Bucket size for time-series reports."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class CamelModel(BaseModel):
    """Base for request/response bodies exchanged with the frontend."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    """Uniform response envelope.

    Usage:
        response_model=ApiResponse[FilingOut]
    """
    success: bool = True
    message: str
    data: T | None = None
    errors: list[str] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Page(CamelModel, Generic[T]):
    """One page of a listing.

    Returns:
        {
            "items": [...],
            "total": 150,
            "page": 2,
            "limit": 10,
            "totalPages": 15
        }
    """
    items: list[T]
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, items: list, total: int, page: int, limit: int) -> "Page[T]":
        return cls(
            items=items,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )


class PageParams(BaseModel):
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
) -> PageParams:
    """Query-string pagination dependency shared by list endpoints."""
    return PageParams(page=page, limit=limit)
