import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.common.custom_exceptions import BadApiRequest


@dataclass
class PageParams:
    page_number: int
    page_size: int
    sort_by: str
    sort_dir: str

    @property
    def offset(self) -> int:
        return self.page_number * self.page_size


def page_params(default_sort: str, default_dir: str = "asc"):
    """Builds a dependency reading `page_number`, `page_size`, `sort_by`, `sort_dir` from the query string."""
    def _params(
        page_number: int = Query(0, ge=0),
        page_size: int = Query(10, ge=1, le=100),
        sort_by: str = Query(default_sort),
        sort_dir: str = Query(default_dir, pattern="^(asc|desc|ASC|DESC)$"),
    ) -> PageParams:
        return PageParams(page_number, page_size, sort_by, sort_dir.lower())
    return _params


async def fetch_page(session: AsyncSession, stmt: Select, params: PageParams,
                     sortable: Mapping[str, Any]) -> Dict[str, Any]:
    """Runs one page of `stmt`; `content` holds the ORM rows, the caller serializes them."""
    column = sortable.get(params.sort_by)
    if column is None:
        raise BadApiRequest(f"Cannot sort by '{params.sort_by}'")

    total = (await session.execute(select(func.count()).select_from(stmt.order_by(None).subquery()))).scalar_one()

    ordered = column.desc() if params.sort_dir == "desc" else column.asc()
    res = await session.execute(stmt.order_by(ordered).offset(params.offset).limit(params.page_size))
    content = list(res.scalars().all())

    total_pages = math.ceil(total / params.page_size) if total else 0
    return {
        "content": content,
        "page_number": params.page_number,
        "page_size": params.page_size,
        "total_elements": total,
        "total_pages": total_pages,
        "last_page": params.page_number + 1 >= total_pages,
    }
