"""Admin router — audit-log browsing (ADMIN only)."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from leave_portal.admin.schemas import AuditLogOut, AuditLogPage
from leave_portal.admin.service import AdminService
from leave_portal.auth.dependencies import Principal, require_role
from leave_portal.common.constants import ADMIN_ROLES, MAX_ROW_ID
from leave_portal.common.pagination import PaginationParams
from leave_portal.common.responses import Envelope, ok
from leave_portal.database import Gateway, get_gateway

router = APIRouter(prefix="", tags=["admin"])

_admin_dep = require_role(*ADMIN_ROLES)


# ── GET /audit-logs ─────────────────────────────────────────────────

@router.get("/audit-logs", response_model=Envelope[AuditLogPage])
async def list_audit_logs(
    action: Optional[str] = Query(None, max_length=50),
    user_id: Optional[int] = Query(None, alias="userId", ge=1, le=MAX_ROW_ID),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    _principal: Principal = Depends(_admin_dep),
    pagination: PaginationParams = Depends(),
    gateway: Gateway = Depends(get_gateway),
):
    """Audit entries newest first, filtered by action, actor and day range."""
    logs, meta, actions = await AdminService.list_audit_logs(
        gateway,
        pagination,
        action=action,
        user_id=user_id,
        date_from=date_from,
        date_to=date_to,
    )
    return ok(AuditLogPage(
        logs=[AuditLogOut(**row) for row in logs],
        pagination=meta,
        available_actions=actions,
    ))
