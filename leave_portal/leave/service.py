"""Leave service — request, history, approval, cancellation, balances.

Balances are charged when a request is filed and refunded from its
per-year splits when it is rejected or cancelled, so ``remaining`` always
reflects pending as well as approved leave.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Mapping, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection
from sqlalchemy.orm import aliased

from leave_portal.app_settings.service import SettingsService
from leave_portal.auth.dependencies import Principal
from leave_portal.common.audit import log_audit
from leave_portal.common.constants import (
    BLOCKING_LEAVE_STATUSES,
    HALF_DAY_SLOTS,
    HR_ROLES,
    LUNCH_END,
    LUNCH_START,
    UNMETERED_LEAVE_TYPES,
    VACATION_MIN_TENURE_YEARS,
    ApprovalAction,
    AuditAction,
    AuditTarget,
    LeaveStatus,
    LeaveType,
    TimeSlot,
    UserRole,
)
from leave_portal.common.exceptions import (
    BadRequestException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
)
from leave_portal.database import Gateway
from leave_portal.leave.models import (
    LeaveBalance,
    LeaveQuota,
    LeaveRequest,
    LeaveRequestYearSplit,
)
from leave_portal.leave.schemas import LeaveDecision, LeaveRequestCreate
from leave_portal.manager.service import delegating_manager_ids
from leave_portal.users.models import User
from leave_portal.working_saturdays.service import WorkingSaturdayService

logger = logging.getLogger(__name__)

_SATURDAY = 5
_SUNDAY = 6

Approver = aliased(User, name="approver")

_REQUEST_COLUMNS = (
    LeaveRequest.id,
    LeaveRequest.leave_type,
    LeaveRequest.start_date,
    LeaveRequest.end_date,
    LeaveRequest.time_slot,
    LeaveRequest.start_time,
    LeaveRequest.end_time,
    LeaveRequest.usage_amount,
    LeaveRequest.reason,
    LeaveRequest.has_medical_cert,
    LeaveRequest.status,
    LeaveRequest.approver_id,
    (Approver.first_name + " " + Approver.last_name).label("approver_name"),
    LeaveRequest.approved_at,
    LeaveRequest.rejection_reason,
    LeaveRequest.created_at,
)

_BALANCE_COLUMNS = (
    LeaveBalance.leave_type,
    LeaveBalance.year,
    LeaveBalance.entitlement,
    LeaveBalance.used,
    LeaveBalance.remaining,
    LeaveBalance.carry_over,
    LeaveBalance.is_auto_created,
)


# ── Usage calculation ───────────────────────────────────────────────

def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def hourly_leave_hours(start: time, end: time) -> float:
    """Hours between *start* and *end*, less any overlap with the lunch break."""
    lunch_start = _minutes(time.fromisoformat(LUNCH_START))
    lunch_end = _minutes(time.fromisoformat(LUNCH_END))
    begin, finish = _minutes(start), _minutes(end)
    lunch = max(0, min(finish, lunch_end) - max(begin, lunch_start))
    return (finish - begin - lunch) / 60


def day_weight(
    day: date, working_saturdays: Mapping[date, float], hours_per_day: float,
) -> float:
    """Fraction of a standard working day that *day* represents."""
    weekday = day.weekday()
    if weekday < _SATURDAY:
        return 1.0
    if weekday == _SATURDAY and day in working_saturdays:
        return working_saturdays[day] / hours_per_day
    return 0.0


def split_usage_by_year(
    data: LeaveRequestCreate,
    working_saturdays: Mapping[date, float],
    hours_per_day: float,
) -> dict[int, float]:
    """Days charged per calendar year for *data*.

    Raises :class:`BadRequestException` when the request lands on no
    working time at all.
    """
    splits: dict[int, float] = defaultdict(float)

    if data.time_slot == TimeSlot.HOURLY:
        day = data.start_date
        if day.weekday() == _SUNDAY:
            raise BadRequestException(
                message="Leave cannot be taken on a Sunday.", error_code="non_working_day",
            )
        if day.weekday() == _SATURDAY and day not in working_saturdays:
            raise BadRequestException(
                message=f"{day.isoformat()} is not a working Saturday.",
                error_code="non_working_day",
            )
        splits[day.year] = hourly_leave_hours(data.start_time, data.end_time) / hours_per_day
    elif data.time_slot in HALF_DAY_SLOTS:
        day = data.start_date
        splits[day.year] = day_weight(day, working_saturdays, hours_per_day) / 2
    else:
        day = data.start_date
        while day <= data.end_date:
            weight = day_weight(day, working_saturdays, hours_per_day)
            if weight:
                splits[day.year] += weight
            day += timedelta(days=1)

    rounded = {year: round(amount, 3) for year, amount in splits.items() if amount > 0}
    if not rounded:
        raise BadRequestException(
            message="The selected period contains no working time.",
            error_code="non_working_day",
        )
    return rounded


def _tenure_reached(start_date: date, today: date, years: int) -> bool:
    try:
        anniversary = start_date.replace(year=start_date.year + years)
    except ValueError:
        # 29 February start
        anniversary = start_date.replace(year=start_date.year + years, day=28) + timedelta(days=1)
    return today >= anniversary


# ── Balance helpers (inside a transaction) ──────────────────────────

async def _charge_balance(
    conn: AsyncConnection, user_id: int, leave_type: LeaveType, year: int, amount: float,
) -> None:
    found = (
        await conn.execute(
            select(LeaveBalance.id, LeaveBalance.remaining)
            .where(
                LeaveBalance.user_id == user_id,
                LeaveBalance.leave_type == leave_type,
                LeaveBalance.year == year,
            )
            .with_for_update()
        )
    ).mappings().first()

    if found is None:
        default_days = (
            await conn.execute(
                select(LeaveQuota.default_days).where(LeaveQuota.leave_type == leave_type)
            )
        ).scalar_one_or_none()
        if default_days is None:
            raise BadRequestException(
                message=f"No quota is configured for {leave_type.value} leave.",
                error_code="no_quota",
            )
        balance_id = (
            await conn.execute(
                insert(LeaveBalance)
                .values(
                    user_id=user_id,
                    leave_type=leave_type,
                    year=year,
                    entitlement=default_days,
                    used=0,
                    remaining=default_days,
                    carry_over=0,
                    is_auto_created=True,
                )
                .returning(LeaveBalance.id)
            )
        ).scalar_one()
        remaining = default_days
    else:
        balance_id, remaining = found["id"], found["remaining"]

    charged = await conn.execute(
        update(LeaveBalance)
        .where(LeaveBalance.id == balance_id, LeaveBalance.remaining >= amount)
        .values(
            used=LeaveBalance.used + amount,
            remaining=LeaveBalance.remaining - amount,
            updated_at=datetime.now(timezone.utc),
        )
    )
    if charged.rowcount == 0:
        raise BadRequestException(
            message=(
                f"Not enough {leave_type.value} leave for {year}: "
                f"{remaining:g} day(s) remaining, {amount:g} requested."
            ),
            error_code="insufficient_balance",
        )


async def _refund_balance(
    conn: AsyncConnection, request_id: int, user_id: int, leave_type: LeaveType,
) -> None:
    if leave_type in UNMETERED_LEAVE_TYPES:
        return
    splits = (
        await conn.execute(
            select(LeaveRequestYearSplit.year, LeaveRequestYearSplit.usage_amount).where(
                LeaveRequestYearSplit.leave_request_id == request_id,
            )
        )
    ).mappings().all()
    for split in splits:
        await conn.execute(
            update(LeaveBalance)
            .where(
                LeaveBalance.user_id == user_id,
                LeaveBalance.leave_type == leave_type,
                LeaveBalance.year == split["year"],
            )
            .values(
                used=LeaveBalance.used - split["usage_amount"],
                remaining=LeaveBalance.remaining + split["usage_amount"],
                updated_at=datetime.now(timezone.utc),
            )
        )


class LeaveService:
    """Static service class for the leave workflow."""

    # ─────────────────────────────────────────────────────────────────
    # Request
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_request(
        gateway: Gateway,
        principal: Principal,
        data: LeaveRequestCreate,
        ip_address: Optional[str] = None,
        today: Optional[date] = None,
    ) -> dict[str, Any]:
        """File a leave request for the caller and charge their balances."""
        today = today or date.today()

        overlapping = await gateway.query(
            select(LeaveRequest.id)
            .where(
                LeaveRequest.user_id == principal.id,
                LeaveRequest.status.in_(BLOCKING_LEAVE_STATUSES),
                LeaveRequest.start_date <= data.end_date,
                LeaveRequest.end_date >= data.start_date,
            )
            .limit(1)
        )
        if overlapping:
            raise ConflictError("You already have leave booked during this period.")

        saturdays = await WorkingSaturdayService.list_range(gateway, data.start_date, data.end_date)
        hours_per_day = await SettingsService.get_work_hours_per_day(gateway)
        splits = split_usage_by_year(
            data, {row["work_date"]: row["work_hours"] for row in saturdays}, hours_per_day,
        )
        usage = round(sum(splits.values()), 3)

        rules = await SettingsService.get_leave_rules(gateway)
        if data.leave_type == LeaveType.VACATION:
            users = await gateway.query(select(User.start_date).where(User.id == principal.id))
            started = users[0]["start_date"] if users else None
            if started is not None and not _tenure_reached(started, today, VACATION_MIN_TENURE_YEARS):
                raise BadRequestException(
                    message="Vacation leave is available after one year of service.",
                    error_code="tenure_required",
                )
            if (data.start_date - today).days < rules.advance_notice_days:
                raise BadRequestException(
                    message=(
                        f"Vacation leave must be requested at least "
                        f"{rules.advance_notice_days} day(s) in advance."
                    ),
                    error_code="advance_notice_required",
                )
        if (
            data.leave_type == LeaveType.SICK
            and usage >= rules.sick_cert_threshold
            and not data.has_medical_cert
        ):
            raise BadRequestException(
                message=(
                    f"Sick leave of {rules.sick_cert_threshold} day(s) or more "
                    "needs a medical certificate."
                ),
                error_code="medical_cert_required",
            )

        async with gateway.transaction() as conn:
            if data.leave_type not in UNMETERED_LEAVE_TYPES:
                for year, amount in sorted(splits.items()):
                    await _charge_balance(conn, principal.id, data.leave_type, year, amount)

            request_id = (
                await conn.execute(
                    insert(LeaveRequest)
                    .values(
                        user_id=principal.id,
                        leave_type=data.leave_type,
                        start_date=data.start_date,
                        end_date=data.end_date,
                        time_slot=data.time_slot,
                        start_time=data.start_time if data.time_slot == TimeSlot.HOURLY else None,
                        end_time=data.end_time if data.time_slot == TimeSlot.HOURLY else None,
                        usage_amount=usage,
                        reason=data.reason,
                        has_medical_cert=data.has_medical_cert,
                        status=LeaveStatus.PENDING,
                    )
                    .returning(LeaveRequest.id)
                )
            ).scalar_one()
            await conn.execute(
                insert(LeaveRequestYearSplit),
                [
                    {"leave_request_id": request_id, "year": year, "usage_amount": amount}
                    for year, amount in sorted(splits.items())
                ],
            )

        logger.info(
            "User %s requested %s leave %s..%s (%s day(s))",
            principal.id, data.leave_type.value, data.start_date, data.end_date, usage,
        )
        await log_audit(
            gateway,
            user_id=principal.id,
            action=AuditAction.CREATE_LEAVE_REQUEST,
            target_table=AuditTarget.LEAVE_REQUESTS,
            target_id=request_id,
            new_value={
                "leaveType": data.leave_type.value,
                "startDate": data.start_date.isoformat(),
                "endDate": data.end_date.isoformat(),
                "timeSlot": data.time_slot.value,
                "usageAmount": usage,
            },
            ip_address=ip_address,
        )
        return {
            "id": request_id,
            "status": LeaveStatus.PENDING,
            "usage_amount": usage,
            "year_splits": splits,
        }

    # ─────────────────────────────────────────────────────────────────
    # History / pending
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_history(
        gateway: Gateway,
        principal: Principal,
        *,
        status: Optional[LeaveStatus] = None,
        leave_type: Optional[LeaveType] = None,
    ) -> list[dict[str, Any]]:
        query = (
            select(*_REQUEST_COLUMNS)
            .outerjoin(Approver, LeaveRequest.approver_id == Approver.id)
            .where(LeaveRequest.user_id == principal.id)
        )
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        if leave_type is not None:
            query = query.where(LeaveRequest.leave_type == leave_type)
        return await gateway.query(
            query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
        )

    @staticmethod
    async def get_pending(
        gateway: Gateway, principal: Principal, today: Optional[date] = None,
    ) -> list[dict[str, Any]]:
        """Pending requests the caller may decide.

        HR and ADMIN see every pending request. Anyone else sees those of
        employees whose department head is the caller (when a manager) or a
        manager who currently delegates to the caller.
        """
        query = (
            select(
                *_REQUEST_COLUMNS,
                LeaveRequest.user_id,
                (User.first_name + " " + User.last_name).label("employee_name"),
                User.employee_id,
                User.department,
            )
            .join(User, LeaveRequest.user_id == User.id)
            .outerjoin(Approver, LeaveRequest.approver_id == Approver.id)
            .where(LeaveRequest.status == LeaveStatus.PENDING)
        )

        if principal.role not in HR_ROLES:
            heads = await delegating_manager_ids(gateway, principal.id, today)
            if principal.role == UserRole.MANAGER:
                heads.append(principal.id)
            if not heads:
                raise ForbiddenException("You have no leave requests to approve.")
            query = query.where(
                User.department_head_id.in_(heads), LeaveRequest.user_id != principal.id,
            )

        return await gateway.query(
            query.order_by(LeaveRequest.start_date.asc(), LeaveRequest.created_at.asc())
        )

    # ─────────────────────────────────────────────────────────────────
    # Approve / reject
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def decide(
        gateway: Gateway,
        principal: Principal,
        data: LeaveDecision,
        ip_address: Optional[str] = None,
        today: Optional[date] = None,
    ) -> LeaveStatus:
        """Approve or reject a pending request; a rejection refunds its balance."""
        rows = await gateway.query(
            select(
                LeaveRequest.id,
                LeaveRequest.user_id,
                LeaveRequest.leave_type,
                LeaveRequest.status,
                User.department_head_id,
            )
            .join(User, LeaveRequest.user_id == User.id)
            .where(LeaveRequest.id == data.leave_id)
        )
        if not rows:
            raise NotFoundException("Leave request", data.leave_id)
        leave = rows[0]

        if leave["user_id"] == principal.id:
            raise ForbiddenException("You cannot decide your own leave request.")

        head_id = leave["department_head_id"]
        allowed = (
            principal.role in HR_ROLES
            or (head_id is not None and head_id == principal.id)
            or (
                head_id is not None
                and head_id in await delegating_manager_ids(gateway, principal.id, today)
            )
        )
        if not allowed:
            raise ForbiddenException("You are not authorized to decide this leave request.")

        if leave["status"] != LeaveStatus.PENDING:
            raise BadRequestException(
                message=f"This leave request is already {leave['status'].value}.",
                error_code="not_pending",
            )

        approve = data.action == ApprovalAction.APPROVE
        new_status = LeaveStatus.APPROVED if approve else LeaveStatus.REJECTED
        now = datetime.now(timezone.utc)
        async with gateway.transaction() as conn:
            changed = await conn.execute(
                update(LeaveRequest)
                .where(LeaveRequest.id == data.leave_id, LeaveRequest.status == LeaveStatus.PENDING)
                .values(
                    status=new_status,
                    approver_id=principal.id,
                    approved_at=now,
                    rejection_reason=None if approve else data.rejection_reason.strip(),
                    updated_at=now,
                )
            )
            if changed.rowcount == 0:
                raise BadRequestException(
                    message="This leave request was decided by someone else.",
                    error_code="not_pending",
                )
            if not approve:
                await _refund_balance(conn, data.leave_id, leave["user_id"], leave["leave_type"])

        logger.info("User %s %s leave request %s", principal.id, new_status.value, data.leave_id)
        await log_audit(
            gateway,
            user_id=principal.id,
            action=AuditAction.APPROVE_LEAVE if approve else AuditAction.REJECT_LEAVE,
            target_table=AuditTarget.LEAVE_REQUESTS,
            target_id=data.leave_id,
            old_value={"status": LeaveStatus.PENDING.value},
            new_value={
                "status": new_status.value,
                "rejectionReason": None if approve else data.rejection_reason.strip(),
            },
            ip_address=ip_address,
        )
        return new_status

    # ─────────────────────────────────────────────────────────────────
    # Cancel
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def cancel(
        gateway: Gateway,
        principal: Principal,
        leave_id: int,
        ip_address: Optional[str] = None,
    ) -> None:
        """Cancel a request and refund its balance.

        Owners may cancel while PENDING; HR and ADMIN may also cancel
        APPROVED requests.
        """
        rows = await gateway.query(
            select(
                LeaveRequest.id, LeaveRequest.user_id, LeaveRequest.leave_type, LeaveRequest.status,
            ).where(LeaveRequest.id == leave_id)
        )
        if not rows:
            raise NotFoundException("Leave request", leave_id)
        leave = rows[0]

        is_hr = principal.role in HR_ROLES
        if leave["user_id"] != principal.id and not is_hr:
            raise ForbiddenException("You can only cancel your own leave requests.")

        status = leave["status"]
        if status in (LeaveStatus.CANCELLED, LeaveStatus.REJECTED):
            raise BadRequestException(
                message=f"This leave request is already {status.value}.",
                error_code="not_cancellable",
            )
        if status != LeaveStatus.PENDING and not is_hr:
            raise BadRequestException(
                message="Only pending requests can be cancelled; ask HR to cancel approved leave.",
                error_code="not_cancellable",
            )

        async with gateway.transaction() as conn:
            changed = await conn.execute(
                update(LeaveRequest)
                .where(LeaveRequest.id == leave_id, LeaveRequest.status == status)
                .values(status=LeaveStatus.CANCELLED, updated_at=datetime.now(timezone.utc))
            )
            if changed.rowcount == 0:
                raise BadRequestException(
                    message="This leave request changed while cancelling; reload and retry.",
                    error_code="not_cancellable",
                )
            await _refund_balance(conn, leave_id, leave["user_id"], leave["leave_type"])

        logger.info("User %s cancelled leave request %s", principal.id, leave_id)
        await log_audit(
            gateway,
            user_id=principal.id,
            action=AuditAction.CANCEL_LEAVE_REQUEST,
            target_table=AuditTarget.LEAVE_REQUESTS,
            target_id=leave_id,
            old_value={"status": status.value},
            new_value={"status": LeaveStatus.CANCELLED.value},
            ip_address=ip_address,
        )

    # ─────────────────────────────────────────────────────────────────
    # Balances
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_balances(
        gateway: Gateway, principal: Principal, year: int,
    ) -> list[dict[str, Any]]:
        """The caller's balances for *year*, opening any missing ones from the quotas."""
        async with gateway.transaction() as conn:
            held = set(
                (
                    await conn.execute(
                        select(LeaveBalance.leave_type).where(
                            LeaveBalance.user_id == principal.id, LeaveBalance.year == year,
                        )
                    )
                ).scalars()
            )
            quotas = (
                await conn.execute(select(LeaveQuota.leave_type, LeaveQuota.default_days))
            ).mappings().all()
            missing = [
                {
                    "user_id": principal.id,
                    "leave_type": quota["leave_type"],
                    "year": year,
                    "entitlement": quota["default_days"],
                    "used": 0,
                    "remaining": quota["default_days"],
                    "carry_over": 0,
                    "is_auto_created": True,
                }
                for quota in quotas
                if quota["leave_type"] not in held
            ]
            if missing:
                await conn.execute(insert(LeaveBalance), missing)

            result = await conn.execute(
                select(*_BALANCE_COLUMNS)
                .where(LeaveBalance.user_id == principal.id, LeaveBalance.year == year)
                .order_by(LeaveBalance.leave_type)
            )
            return [dict(row) for row in result.mappings().all()]
