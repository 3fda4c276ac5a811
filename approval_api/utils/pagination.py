"""Page/page-size pagination shared by the list endpoints."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery

from approval_api.core.config import settings


T = TypeVar("T")


@dataclass
class PaginationParams:
    """1-indexed page and its size."""
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def page_count(self, total: int) -> int:
        return -(-total // self.page_size) if self.page_size > 0 else 0


def get_pagination(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(
        settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description=f"Items per page (max {settings.MAX_PAGE_SIZE})",
    ),
) -> PaginationParams:
    """
    Pagination dependency.

    Usage:
        @router.get("/approvals")
        def list_approvals(pagination: PaginationParams = Depends(get_pagination)):
            ...
    """
    return PaginationParams(page=page, page_size=page_size)


@dataclass
class PaginatedResponse(Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
    pages: int

    @classmethod
    def create(cls, items: list[T], total: int, pagination: PaginationParams) -> "PaginatedResponse[T]":
        return cls(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            pages=pagination.page_count(total),
        )


def paginate_query(query: SQLAlchemyQuery, pagination: PaginationParams) -> tuple[list, int]:
    """
    Slice an ordered query and count its full result.

    The count drops ORDER BY and ignores the slice, so ``total`` is the same
    on every page.

    Returns:
        (items, total_count)
    """
    total = query.order_by(None).count()
    items = query.offset(pagination.offset).limit(pagination.page_size).all()
    return items, total
