"""
Query helpers shared by the list endpoints: sorting and pagination.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskboard_shared.schemas.common import Pagination, SortDirection


def column_values(values: dict[str, Any]) -> dict[str, Any]:
    """Unwrap enum members so payload values can be assigned to string columns."""
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in values.items()}


def apply_sort(stmt, model, sort_by: str, direction: SortDirection, allowed: Iterable[str]):
    """Order by a whitelisted column; unknown columns leave the query unsorted."""
    if sort_by not in allowed:
        return stmt
    column = getattr(model, sort_by)
    if direction == SortDirection.DESC:
        return stmt.order_by(column.desc(), model.id)
    return stmt.order_by(column.asc(), model.id)


async def paginate(
    session: AsyncSession, stmt, page: int, per_page: int
) -> tuple[list[Any], Pagination]:
    """Run a select for one page and count the full result set."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await session.execute(count_stmt)).scalar_one()

    result = await session.execute(stmt.offset((page - 1) * per_page).limit(per_page))
    rows = list(result.scalars().all())
    return rows, Pagination.build(page, per_page, total)
