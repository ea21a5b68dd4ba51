"""
Pagination helpers shared by the list endpoints (feedback, HOD students,
dean users).
"""
from typing import Any, Dict, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

MAX_PAGE_SIZE = 100


def pagination_meta(total: int, page: int, page_size: int) -> Dict[str, Any]:
    """Page bookkeeping for a result set of `total` rows"""
    total_pages = (total + page_size - 1) // page_size if total > 0 else 1
    return {
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
    }


async def paginate(db: AsyncSession, query: Select, page: int = 1, page_size: int = 10) -> Dict[str, Any]:
    """
    Run `query` for one page.

    Returns {"items": [...], "pagination": {...}}; items are ORM objects so the
    caller decides how to serialize them.
    """
    page = max(1, page)
    page_size = max(1, min(MAX_PAGE_SIZE, page_size))

    count_result = await db.execute(select(func.count()).select_from(query.order_by(None).subquery()))
    total = count_result.scalar() or 0

    result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
    items: List[Any] = list(result.scalars().all())

    return {"items": items, "pagination": pagination_meta(total, page, page_size)}
