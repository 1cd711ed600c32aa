"""Admin Pydantic schemas — audit-log browsing."""

from datetime import datetime
from typing import Optional

from leave_portal.common.pagination import PaginationMeta
from leave_portal.common.responses import CamelModel


class AuditLogOut(CamelModel):
    id: int
    user_id: Optional[int] = None
    employee_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    action: str
    target_table: str
    target_id: Optional[int] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None


class AuditLogPage(CamelModel):
    logs: list[AuditLogOut]
    pagination: PaginationMeta
    # Every action recorded so far, for the filter dropdown
    available_actions: list[str]
