"""Admin service — audit-log listing."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import select

from leave_portal.common.exceptions import BadRequestException
from leave_portal.common.models import AuditLog
from leave_portal.common.pagination import PaginationMeta, PaginationParams, paginate
from leave_portal.database import Gateway
from leave_portal.users.models import User


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class AdminService:
    """Static service class for ADMIN-only views."""

    @staticmethod
    async def list_audit_logs(
        gateway: Gateway,
        params: PaginationParams,
        *,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> tuple[list[dict[str, Any]], PaginationMeta, list[str]]:
        """One page of audit entries, newest first; *date_to* is inclusive."""
        if date_from and date_to and date_to < date_from:
            raise BadRequestException(
                message="dateTo must be on or after dateFrom.",
                errors={"dateTo": ["Must be on or after dateFrom."]},
            )

        query = select(
            AuditLog.id,
            AuditLog.user_id,
            User.employee_id,
            User.first_name,
            User.last_name,
            AuditLog.action,
            AuditLog.target_table,
            AuditLog.target_id,
            AuditLog.old_value,
            AuditLog.new_value,
            AuditLog.ip_address,
            AuditLog.created_at,
        ).outerjoin(User, AuditLog.user_id == User.id)

        if action:
            query = query.where(AuditLog.action == action)
        if user_id is not None:
            query = query.where(AuditLog.user_id == user_id)
        if date_from is not None:
            query = query.where(AuditLog.created_at >= _day_start(date_from))
        if date_to is not None:
            query = query.where(AuditLog.created_at < _day_start(date_to + timedelta(days=1)))

        logs, meta = await paginate(
            gateway, query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()), params,
        )
        actions = await gateway.query(
            select(AuditLog.action).distinct().order_by(AuditLog.action)
        )
        return logs, meta, [row["action"] for row in actions]
