"""DelegateApprover ORM model — a manager's temporary stand-in approver."""

from __future__ import annotations

from datetime import date, datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from leave_portal.database import Base


class DelegateApprover(Base):
    __tablename__ = "delegate_approvers"
    __table_args__ = (
        sa.CheckConstraint("end_date >= start_date", name="ck_delegate_dates"),
        sa.Index("ix_delegate_approvers_delegate", "delegate_user_id", "is_active"),
        sa.Index("ix_delegate_approvers_manager", "manager_id"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    manager_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("users.id"), nullable=False,
    )
    delegate_user_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("users.id"), nullable=False,
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, server_default=sa.true(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )
