"""Response envelope schemas shared by every endpoint."""

from math import ceil
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Uniform response envelope."""

    success: bool
    data: T | None = None
    message: str | None = None
    error: str | None = None
    code: str | None = None


class Pagination(BaseModel):
    """Paging metadata for list responses."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """Envelope for a page of items."""

    success: bool = True
    data: list[T]
    pagination: Pagination
    message: str | None = None
