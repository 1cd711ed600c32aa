"""Page/limit pagination for gateway-backed list endpoints."""

import math
from typing import Any

from fastapi import Query
from sqlalchemy import Select, func, select

from leave_portal.common.responses import CamelModel
from leave_portal.database import Gateway


# ── FastAPI dependency ──────────────────────────────────────────────

class PaginationParams:
    """Inject via ``Depends(PaginationParams)`` on any list endpoint."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1, le=100000, description="Page number (1-indexed)"),
        limit: int = Query(default=50, ge=1, le=200, description="Items per page (max 200)"),
    ) -> None:
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# ── Response model ──────────────────────────────────────────────────

class PaginationMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


# ── Query helper ────────────────────────────────────────────────────

async def paginate(
    gateway: Gateway, query: Select, params: PaginationParams,
) -> tuple[list[dict[str, Any]], PaginationMeta]:
    """Run *query* for one page and count the full result set."""
    # ORDER BY is irrelevant to the count
    count_q = select(func.count().label("total")).select_from(query.order_by(None).subquery())
    total: int = (await gateway.query(count_q))[0]["total"]

    rows = await gateway.query(query.offset(params.offset).limit(params.limit))
    return rows, PaginationMeta(
        page=params.page,
        limit=params.limit,
        total=total,
        total_pages=math.ceil(total / params.limit) if total else 0,
    )
