"""Append-only audit logging for security-relevant actions."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Optional

from fastapi import Request
from sqlalchemy import insert

from leave_portal.common.constants import AuditAction, AuditTarget
from leave_portal.common.exceptions import DataAccessError

if TYPE_CHECKING:
    from leave_portal.database import Gateway

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> Optional[str]:
    """Best-effort client address, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def _snapshot(value: Optional[dict[str, Any]]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=str, ensure_ascii=False)


async def log_audit(
    gateway: Gateway,
    *,
    user_id: int,
    action: AuditAction,
    target_table: AuditTarget,
    target_id: Optional[int] = None,
    old_value: Optional[dict[str, Any]] = None,
    new_value: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> bool:
    """
    Insert one audit row.

    Args:
        gateway: Data-access gateway.
        user_id: Id of the user performing the action.
        action: What happened.
        target_table: Table the action touched.
        target_id: Row id inside *target_table*, when there is one.
        old_value: Previous state snapshot.
        new_value: New state snapshot.
        ip_address: Client IP.

    Returns False (after logging) when the write fails; the caller's
    primary operation has already succeeded and is not undone.
    """
    from leave_portal.common.models import AuditLog

    try:
        await gateway.execute(
            insert(AuditLog).values(
                user_id=user_id,
                action=action.value,
                target_table=target_table.value,
                target_id=target_id,
                old_value=_snapshot(old_value),
                new_value=_snapshot(new_value),
                ip_address=ip_address,
            )
        )
    except DataAccessError:
        logger.exception(
            "Audit write failed: %s on %s/%s by user %s",
            action.value, target_table.value, target_id, user_id,
        )
        return False
    return True
