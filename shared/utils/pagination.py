"""
shared/utils/pagination.py
Page/limit normalization and the paginated-query helper used by every list endpoint.
"""

from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def normalize_page(page: Optional[int] = None, limit: Optional[int] = None) -> PageParams:
    """page < 1 becomes 1; limit is clamped to [1, MAX_PAGE_SIZE]."""
    page = page if page is not None else 1
    limit = limit if limit is not None else settings.DEFAULT_PAGE_SIZE
    return PageParams(
        page=max(1, page),
        limit=min(max(1, limit), settings.MAX_PAGE_SIZE),
    )


def total_pages(total_count: int, limit: int) -> int:
    return -(-total_count // limit)  # ceiling division


async def paginate(db: AsyncSession, query: Select, params: PageParams) -> dict[str, Any]:
    """
    Run `query` for one page and count the full result set.
    Returns the shape every list endpoint serves:
        {data, total_count, current_page, total_pages}
    """
    total = await db.scalar(select(func.count()).select_from(query.order_by(None).subquery()))
    result = await db.execute(query.offset(params.offset).limit(params.limit))
    return {
        "data": list(result.scalars().all()),
        "total_count": total or 0,
        "current_page": params.page,
        "total_pages": total_pages(total or 0, params.limit),
    }


def page_params(
    page: Optional[int] = Query(None, description="1-based page number"),
    limit: Optional[int] = Query(None, description="Page size, at most MAX_PAGE_SIZE"),
) -> PageParams:
    """FastAPI dependency form of normalize_page."""
    return normalize_page(page, limit)
