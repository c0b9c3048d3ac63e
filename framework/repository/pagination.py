"""
Pagination: page-number normalization and windowed reads over a select statement.

A requested page that cannot hold any row (page number below 1, or a window
starting at or beyond the total row count) is normalized to page 1, so callers
never receive a spuriously empty page.
"""

import math
from typing import Any, Tuple
from pydantic import BaseModel, ConfigDict
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession

DEFAULT_PAGE_SIZE = 10


class PageRequest(BaseModel):
    """Normalized page descriptor (1-based page number, positive page size)."""
    model_config = ConfigDict(frozen=True)

    page_number: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page_number - 1) * self.page_size


class PagedResult(BaseModel):
    """One page of entities plus the total count of the filtered set."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    items: Tuple[Any, ...] = ()
    page_number: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.total_count else 0

    @property
    def has_previous(self) -> bool:
        return self.page_number > 1

    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages


def normalize_page(page_number: int, page_size: int, total_count: int) -> PageRequest:
    """Apply the page-size default and fall back to page 1 for unreachable pages."""
    if page_size <= 0:
        page_size = DEFAULT_PAGE_SIZE
    if page_number < 1 or (page_number - 1) * page_size >= total_count:
        page_number = 1
    return PageRequest(page_number=page_number, page_size=page_size)


async def count_rows(session: AsyncSession, statement) -> int:
    """Count the rows a statement would return (ordering is dropped)."""
    subquery = statement.order_by(None).subquery()
    result = await session.exec(select(func.count()).select_from(subquery))
    return result.one()


async def paginate(
    session: AsyncSession,
    statement,
    page_number: int,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> PagedResult:
    """Count the statement, normalize the page and materialize exactly that window."""
    total_count = await count_rows(session, statement)
    page = normalize_page(page_number, page_size, total_count)

    result = await session.exec(statement.offset(page.offset).limit(page.page_size))
    return PagedResult(
        items=tuple(result.all()),
        page_number=page.page_number,
        page_size=page.page_size,
        total_count=total_count,
    )
