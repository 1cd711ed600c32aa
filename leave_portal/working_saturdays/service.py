"""Working-Saturday service — calendar overrides that credit work hours.

Used by the public range lookup (leave-duration calculations) and by the
HR administration routes.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, time
from typing import Any, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError

from leave_portal.auth.dependencies import Principal
from leave_portal.common.audit import log_audit
from leave_portal.common.constants import (
    DEFAULT_SATURDAY_END,
    DEFAULT_SATURDAY_START,
    AuditAction,
    AuditTarget,
)
from leave_portal.common.exceptions import (
    BadRequestException,
    ConflictError,
    NotFoundException,
    QueryExecutionError,
)
from leave_portal.database import Gateway
from leave_portal.users.models import User
from leave_portal.working_saturdays.models import WorkingSaturday
from leave_portal.working_saturdays.schemas import WorkingSaturdayCreate

logger = logging.getLogger(__name__)

_SATURDAY = 5  # date.weekday()


def compute_work_hours(start: time, end: time) -> float:
    """Hours credited for a shift, from its bounds."""
    minutes = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
    return round(minutes / 60, 2)


def period_bounds(year: int, month: Optional[int] = None) -> tuple[date, date]:
    """First and last day of *year*, or of *month* within it."""
    if month is None:
        return date(year, 1, 1), date(year, 12, 31)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


class WorkingSaturdayService:
    """Static service class for working-Saturday reads and HR administration."""

    @staticmethod
    async def list_range(gateway: Gateway, start_date: date, end_date: date) -> list[dict[str, Any]]:
        """Rows whose date lies in the inclusive range, ordered by date."""
        return await gateway.query(
            select(
                WorkingSaturday.work_date,
                WorkingSaturday.start_time,
                WorkingSaturday.end_time,
                WorkingSaturday.work_hours,
            )
            .where(WorkingSaturday.work_date >= start_date, WorkingSaturday.work_date <= end_date)
            .order_by(WorkingSaturday.work_date.asc())
        )

    @staticmethod
    async def list_period(
        gateway: Gateway, year: int, month: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        start_date, end_date = period_bounds(year, month)
        return await gateway.query(
            select(
                WorkingSaturday.id,
                WorkingSaturday.work_date,
                WorkingSaturday.start_time,
                WorkingSaturday.end_time,
                WorkingSaturday.work_hours,
                WorkingSaturday.description,
                WorkingSaturday.company,
                WorkingSaturday.created_at,
                (User.first_name + " " + User.last_name).label("created_by_name"),
            )
            .outerjoin(User, WorkingSaturday.created_by == User.id)
            .where(WorkingSaturday.work_date >= start_date, WorkingSaturday.work_date <= end_date)
            .order_by(WorkingSaturday.work_date.asc())
        )

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create(
        gateway: Gateway,
        principal: Principal,
        data: WorkingSaturdayCreate,
        ip_address: Optional[str] = None,
    ) -> dict[str, Any]:
        if data.work_date.weekday() != _SATURDAY:
            raise BadRequestException(
                message=f"{data.work_date.isoformat()} is not a Saturday.",
                error_code="not_a_saturday",
            )

        start = data.start_time or time.fromisoformat(DEFAULT_SATURDAY_START)
        end = data.end_time or time.fromisoformat(DEFAULT_SATURDAY_END)
        if end <= start:
            raise BadRequestException(
                message="endTime must be later than startTime.",
                errors={"endTime": ["Must be later than startTime."]},
            )
        work_hours = compute_work_hours(start, end)

        existing = await gateway.query(
            select(WorkingSaturday.id).where(WorkingSaturday.work_date == data.work_date)
        )
        if existing:
            raise ConflictError(f"{data.work_date.isoformat()} is already a working Saturday.")

        try:
            rows = await gateway.query(
                insert(WorkingSaturday)
                .values(
                    work_date=data.work_date,
                    start_time=start,
                    end_time=end,
                    work_hours=work_hours,
                    description=data.description or None,
                    company=data.company or None,
                    created_by=principal.id,
                )
                .returning(WorkingSaturday.id)
            )
        except QueryExecutionError as exc:
            # Lost a race with a concurrent insert of the same date
            if isinstance(exc.__cause__, IntegrityError):
                raise ConflictError(
                    f"{data.work_date.isoformat()} is already a working Saturday.",
                ) from exc
            raise

        created = {
            "id": rows[0]["id"],
            "work_date": data.work_date,
            "start_time": start,
            "end_time": end,
            "work_hours": work_hours,
        }
        logger.info(
            "Working Saturday %s added by user %s", data.work_date.isoformat(), principal.id,
        )
        await log_audit(
            gateway,
            user_id=principal.id,
            action=AuditAction.CREATE_WORKING_SATURDAY,
            target_table=AuditTarget.WORKING_SATURDAYS,
            target_id=created["id"],
            new_value={
                "date": data.work_date.isoformat(),
                "startTime": start.strftime("%H:%M"),
                "endTime": end.strftime("%H:%M"),
                "workHours": work_hours,
            },
            ip_address=ip_address,
        )
        return created

    # ── Delete ──────────────────────────────────────────────────────

    @staticmethod
    async def delete(
        gateway: Gateway,
        principal: Principal,
        *,
        ws_id: Optional[int] = None,
        work_date: Optional[date] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        """Remove by id, or by date when no id is given."""
        if ws_id is not None:
            rows = await gateway.query(
                delete(WorkingSaturday)
                .where(WorkingSaturday.id == ws_id)
                .returning(WorkingSaturday.id, WorkingSaturday.work_date)
            )
        elif work_date is not None:
            rows = await gateway.query(
                delete(WorkingSaturday)
                .where(WorkingSaturday.work_date == work_date)
                .returning(WorkingSaturday.id, WorkingSaturday.work_date)
            )
        else:
            raise BadRequestException(message="Either id or date is required.")

        if not rows:
            raise NotFoundException(
                "Working Saturday", ws_id if ws_id is not None else work_date.isoformat(),
            )

        deleted = rows[0]
        await log_audit(
            gateway,
            user_id=principal.id,
            action=AuditAction.DELETE_WORKING_SATURDAY,
            target_table=AuditTarget.WORKING_SATURDAYS,
            target_id=deleted["id"],
            old_value={"id": deleted["id"], "date": deleted["work_date"]},
            ip_address=ip_address,
        )

