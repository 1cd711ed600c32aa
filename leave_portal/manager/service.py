"""Manager service — delegate search and delegate-approver assignments.

A delegate stands in for a manager's approval authority between
``start_date`` and ``end_date`` inclusive. Cancelling an assignment is a
soft delete (``is_active`` cleared); rows are never removed.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy import func, insert, or_, select, update

from leave_portal.auth.dependencies import Principal
from leave_portal.common.audit import log_audit
from leave_portal.common.constants import (
    SEARCH_MAX_RESULTS,
    SEARCH_MIN_CHARS,
    AuditAction,
    AuditTarget,
    DelegateStatus,
)
from leave_portal.common.exceptions import (
    BadRequestException,
    ConflictError,
    NotFoundException,
)
from leave_portal.database import Gateway
from leave_portal.manager.models import DelegateApprover
from leave_portal.manager.schemas import DelegateCreate
from leave_portal.users.models import User

logger = logging.getLogger(__name__)

_FULL_NAME = User.first_name + " " + User.last_name


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def delegate_status(
    is_active: bool, start_date: date, end_date: date, today: Optional[date] = None,
) -> DelegateStatus:
    today = today or date.today()
    if not is_active:
        return DelegateStatus.CANCELLED
    if today < start_date:
        return DelegateStatus.UPCOMING
    if today > end_date:
        return DelegateStatus.EXPIRED
    return DelegateStatus.ACTIVE


async def delegating_manager_ids(
    gateway: Gateway, user_id: int, today: Optional[date] = None,
) -> list[int]:
    """Managers whose approval authority *user_id* holds today."""
    today = today or date.today()
    rows = await gateway.query(
        select(DelegateApprover.manager_id)
        .where(
            DelegateApprover.delegate_user_id == user_id,
            DelegateApprover.is_active.is_(True),
            DelegateApprover.start_date <= today,
            DelegateApprover.end_date >= today,
        )
        .distinct()
    )
    return [row["manager_id"] for row in rows]


class ManagerService:
    """Static service class for manager-only operations."""

    # ── Search ──────────────────────────────────────────────────────

    @staticmethod
    async def search_candidates(
        gateway: Gateway, principal: Principal, query: Optional[str],
    ) -> list[dict[str, Any]]:
        """Active users (never the caller) whose name or employee id contains *query*.

        Queries shorter than ``SEARCH_MIN_CHARS`` after trimming return an
        empty list without touching the store.
        """
        term = (query or "").strip()
        if len(term) < SEARCH_MIN_CHARS:
            return []
        pattern = f"%{escape_like(term.lower())}%"
        return await gateway.query(
            select(User.id, _FULL_NAME.label("name"), User.department, User.employee_id)
            .where(
                User.is_active.is_(True),
                User.id != principal.id,
                or_(
                    func.lower(_FULL_NAME).like(pattern, escape="\\"),
                    func.lower(User.employee_id).like(pattern, escape="\\"),
                ),
            )
            .order_by(User.first_name, User.last_name)
            .limit(SEARCH_MAX_RESULTS)
        )

    # ── Assignments ─────────────────────────────────────────────────

    @staticmethod
    async def list_delegates(
        gateway: Gateway, principal: Principal, today: Optional[date] = None,
    ) -> list[dict[str, Any]]:
        rows = await gateway.query(
            select(
                DelegateApprover.id,
                DelegateApprover.delegate_user_id,
                DelegateApprover.start_date,
                DelegateApprover.end_date,
                DelegateApprover.is_active,
                DelegateApprover.created_at,
                _FULL_NAME.label("delegate_name"),
                User.department,
                User.employee_id,
            )
            .join(User, DelegateApprover.delegate_user_id == User.id)
            .where(DelegateApprover.manager_id == principal.id)
            .order_by(DelegateApprover.created_at.desc(), DelegateApprover.id.desc())
        )
        for row in rows:
            row["status"] = delegate_status(
                row["is_active"], row["start_date"], row["end_date"], today,
            )
        return rows

    @staticmethod
    async def create_delegate(
        gateway: Gateway,
        principal: Principal,
        data: DelegateCreate,
        ip_address: Optional[str] = None,
    ) -> dict[str, Any]:
        if data.delegate_user_id == principal.id:
            raise BadRequestException(
                message="You cannot assign yourself as a delegate.",
                error_code="self_delegation",
            )

        users = await gateway.query(
            select(User.id, User.first_name, User.last_name).where(
                User.id == data.delegate_user_id, User.is_active.is_(True),
            )
        )
        if not users:
            raise BadRequestException(
                message="The selected user does not exist or is inactive.",
                error_code="inactive_delegate",
            )
        delegate_name = f"{users[0]['first_name']} {users[0]['last_name']}"

        overlapping = await gateway.query(
            select(DelegateApprover.id).where(
                DelegateApprover.manager_id == principal.id,
                DelegateApprover.delegate_user_id == data.delegate_user_id,
                DelegateApprover.is_active.is_(True),
                DelegateApprover.start_date <= data.end_date,
                DelegateApprover.end_date >= data.start_date,
            )
        )
        if overlapping:
            raise ConflictError(
                f"{delegate_name} is already your delegate during an overlapping period.",
            )

        rows = await gateway.query(
            insert(DelegateApprover)
            .values(
                manager_id=principal.id,
                delegate_user_id=data.delegate_user_id,
                start_date=data.start_date,
                end_date=data.end_date,
                is_active=True,
            )
            .returning(DelegateApprover.id)
        )
        new_id = rows[0]["id"]

        logger.info(
            "Manager %s delegated approvals to user %s (%s..%s)",
            principal.id, data.delegate_user_id, data.start_date, data.end_date,
        )
        await log_audit(
            gateway,
            user_id=principal.id,
            action=AuditAction.CREATE_DELEGATE,
            target_table=AuditTarget.DELEGATE_APPROVERS,
            target_id=new_id,
            new_value={
                "delegateUserId": data.delegate_user_id,
                "delegateName": delegate_name,
                "startDate": data.start_date.isoformat(),
                "endDate": data.end_date.isoformat(),
            },
            ip_address=ip_address,
        )
        return {"id": new_id, "delegate_name": delegate_name}

    @staticmethod
    async def cancel_delegate(
        gateway: Gateway,
        principal: Principal,
        delegate_id: int,
        ip_address: Optional[str] = None,
    ) -> None:
        """Soft-cancel one of the caller's own active assignments."""
        owned = await gateway.query(
            select(DelegateApprover.id, _FULL_NAME.label("delegate_name"))
            .join(User, DelegateApprover.delegate_user_id == User.id)
            .where(
                DelegateApprover.id == delegate_id,
                DelegateApprover.manager_id == principal.id,
                DelegateApprover.is_active.is_(True),
            )
        )
        if not owned:
            raise NotFoundException("Delegate assignment", delegate_id)

        await gateway.execute(
            update(DelegateApprover)
            .where(
                DelegateApprover.id == delegate_id,
                DelegateApprover.manager_id == principal.id,
            )
            .values(is_active=False)
        )
        await log_audit(
            gateway,
            user_id=principal.id,
            action=AuditAction.CANCEL_DELEGATE,
            target_table=AuditTarget.DELEGATE_APPROVERS,
            target_id=delegate_id,
            new_value={"delegateName": owned[0]["delegate_name"], "cancelled": True},
            ip_address=ip_address,
        )
