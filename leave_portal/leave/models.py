"""Leave ORM models: LeaveQuota, LeaveBalance, LeaveRequest, LeaveRequestYearSplit."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from leave_portal.common.constants import LeaveStatus, LeaveType, TimeSlot
from leave_portal.database import Base


def _enum(enum_cls: type, name: str) -> sa.Enum:
    return sa.Enum(enum_cls, name=name, native_enum=False, length=20)


class LeaveQuota(Base):
    """Default yearly entitlement per leave type, copied into new balances."""

    __tablename__ = "leave_quotas"

    leave_type: Mapped[LeaveType] = mapped_column(_enum(LeaveType, "leave_type"), primary_key=True)
    default_days: Mapped[float] = mapped_column(sa.Float, nullable=False, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )


class LeaveBalance(Base):
    __tablename__ = "leave_balances"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "leave_type", "year", name="uq_leave_balance"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.Integer, sa.ForeignKey("users.id"), nullable=False)
    leave_type: Mapped[LeaveType] = mapped_column(_enum(LeaveType, "leave_type"), nullable=False)
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    entitlement: Mapped[float] = mapped_column(sa.Float, nullable=False, server_default="0")
    used: Mapped[float] = mapped_column(sa.Float, nullable=False, server_default="0")
    remaining: Mapped[float] = mapped_column(sa.Float, nullable=False, server_default="0")
    carry_over: Mapped[float] = mapped_column(sa.Float, nullable=False, server_default="0")
    is_auto_created: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, server_default=sa.false(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_requests_dates"),
        sa.Index("ix_leave_requests_user_status", "user_id", "status"),
        sa.Index("ix_leave_requests_status", "status"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.Integer, sa.ForeignKey("users.id"), nullable=False)
    leave_type: Mapped[LeaveType] = mapped_column(_enum(LeaveType, "leave_type"), nullable=False)
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    time_slot: Mapped[TimeSlot] = mapped_column(
        _enum(TimeSlot, "time_slot"), nullable=False, server_default=TimeSlot.FULL_DAY.value,
    )
    start_time: Mapped[Optional[time]] = mapped_column(sa.Time)
    end_time: Mapped[Optional[time]] = mapped_column(sa.Time)
    usage_amount: Mapped[float] = mapped_column(sa.Float, nullable=False)
    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)
    has_medical_cert: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, server_default=sa.false(),
    )
    status: Mapped[LeaveStatus] = mapped_column(
        _enum(LeaveStatus, "leave_status"), nullable=False, server_default=LeaveStatus.PENDING.value,
    )
    approver_id: Mapped[Optional[int]] = mapped_column(sa.Integer, sa.ForeignKey("users.id"))
    approved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    rejection_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )

    def __repr__(self) -> str:
        return f"<LeaveRequest {self.id} {self.leave_type} {self.status}>"


class LeaveRequestYearSplit(Base):
    """Per-year share of a request's usage, so refunds hit the right balance."""

    __tablename__ = "leave_request_year_splits"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    leave_request_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("leave_requests.id", ondelete="CASCADE"), nullable=False,
    )
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    usage_amount: Mapped[float] = mapped_column(sa.Float, nullable=False)
