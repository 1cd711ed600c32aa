"""HR service — department lookup and employee password administration."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, select, update

from leave_portal.auth.dependencies import Principal
from leave_portal.auth.service import hash_password
from leave_portal.common.audit import log_audit
from leave_portal.common.constants import AuditAction, AuditTarget
from leave_portal.common.exceptions import NotFoundException
from leave_portal.database import Gateway
from leave_portal.users.models import User

logger = logging.getLogger(__name__)


class HRService:
    """Static service class for HR administration."""

    @staticmethod
    async def list_departments(gateway: Gateway) -> list[str]:
        rows = await gateway.query(
            select(User.department)
            .where(User.department.is_not(None), User.department != "")
            .distinct()
            .order_by(User.department.asc())
        )
        return [row["department"] for row in rows]

    @staticmethod
    async def reset_password(
        gateway: Gateway,
        principal: Principal,
        user_id: int,
        new_password: str,
        ip_address: Optional[str] = None,
    ) -> None:
        """Overwrite another user's password with a fresh bcrypt hash."""
        hashed = await run_in_threadpool(hash_password, new_password)
        updated = await gateway.execute(
            update(User)
            .where(User.id == user_id)
            .values(password=hashed, updated_at=func.now())
        )
        if updated == 0:
            raise NotFoundException("User", user_id)

        logger.info("Password of user %s reset by user %s", user_id, principal.id)
        await log_audit(
            gateway,
            user_id=principal.id,
            action=AuditAction.RESET_PASSWORD,
            target_table=AuditTarget.USERS,
            target_id=user_id,
            new_value={"resetBy": principal.employee_id},
            ip_address=ip_address,
        )
