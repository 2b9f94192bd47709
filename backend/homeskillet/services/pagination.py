# backend/homeskillet/services/pagination.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from ..config import settings


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int
    sort_by: str
    sort_order: str  # asc | desc

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _as_int(raw: Any, default: int) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def page_params(
    query: Mapping[str, Any],
    *,
    sortable: Sequence[str],
    default_sort: str = "created_at",
    default_order: str = "desc",
    default_limit: Optional[int] = None,
) -> PageParams:
    """
    Reads page/limit/sort from query args.

    Both camelCase (sortBy, sortOrder) and snake_case (sort_by, sort_order) are
    accepted; a sort key outside `sortable` falls back to the default.
    """
    limit_default = int(default_limit or settings.default_page_limit)
    page = max(1, _as_int(query.get("page"), 1))
    limit = _as_int(query.get("limit"), limit_default)
    limit = min(max(1, limit), int(settings.max_page_limit))

    sort_by = str(query.get("sortBy") or query.get("sort_by") or default_sort)
    if sort_by not in sortable:
        sort_by = default_sort

    sort_order = str(query.get("sortOrder") or query.get("sort_order") or default_order).lower()
    if sort_order not in ("asc", "desc"):
        sort_order = default_order

    return PageParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


def pagination_meta(params: PageParams, total: int) -> dict[str, Any]:
    pages = math.ceil(total / params.limit) if total else 0
    return {
        "page": params.page,
        "limit": params.limit,
        "total": int(total),
        "pages": pages,
        "total_pages": pages,
        "has_next": params.page < pages,
        "has_prev": params.page > 1,
    }


def paginate(db: Session, stmt: Select, params: PageParams, order_col: Any) -> tuple[list[Any], dict[str, Any]]:
    """Runs `stmt` for one page and counts the full filtered set."""
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    ordered = stmt.order_by(order_col.asc() if params.sort_order == "asc" else order_col.desc())
    rows = list(db.scalars(ordered.offset(params.offset).limit(params.limit)).all())
    return rows, pagination_meta(params, int(total))
