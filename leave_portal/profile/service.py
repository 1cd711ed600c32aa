"""Profile service — the caller's own record and self-service password change."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, select, update

from leave_portal.auth.dependencies import Principal
from leave_portal.auth.service import check_password, hash_password
from leave_portal.common.audit import log_audit
from leave_portal.common.constants import AuditAction, AuditTarget
from leave_portal.common.exceptions import BadRequestException, NotFoundException
from leave_portal.database import Gateway
from leave_portal.users.models import User

logger = logging.getLogger(__name__)


class ProfileService:
    """Static service class for self-service profile operations."""

    @staticmethod
    async def get_profile(gateway: Gateway, principal: Principal) -> dict[str, Any]:
        rows = await gateway.query(
            select(
                User.employee_id,
                User.first_name,
                User.last_name,
                User.email,
                User.company,
                User.department,
                User.role,
                User.gender,
                User.start_date,
            ).where(User.id == principal.id)
        )
        if not rows:
            raise NotFoundException("User", principal.id)
        return rows[0]

    @staticmethod
    async def change_password(
        gateway: Gateway,
        principal: Principal,
        current_password: str,
        new_password: str,
        ip_address: Optional[str] = None,
    ) -> None:
        rows = await gateway.query(select(User.password).where(User.id == principal.id))
        if not rows:
            raise NotFoundException("User", principal.id)

        if not await run_in_threadpool(check_password, current_password, rows[0]["password"]):
            raise BadRequestException(
                message="The current password is incorrect.",
                error_code="invalid_current_password",
            )

        hashed = await run_in_threadpool(hash_password, new_password)
        await gateway.execute(
            update(User)
            .where(User.id == principal.id)
            .values(password=hashed, updated_at=func.now())
        )

        logger.info("User %s changed their password", principal.id)
        await log_audit(
            gateway,
            user_id=principal.id,
            action=AuditAction.CHANGE_PASSWORD,
            target_table=AuditTarget.USERS,
            target_id=principal.id,
            ip_address=ip_address,
        )
