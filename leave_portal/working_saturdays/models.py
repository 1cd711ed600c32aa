"""WorkingSaturday ORM model — calendar override crediting work hours."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from leave_portal.database import Base


class WorkingSaturday(Base):
    __tablename__ = "working_saturdays"
    __table_args__ = (
        sa.CheckConstraint("end_time > start_time", name="ck_working_saturdays_bounds"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    work_date: Mapped[date] = mapped_column(sa.Date, unique=True, nullable=False)
    start_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    end_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    work_hours: Mapped[float] = mapped_column(sa.Float, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.String(255))
    company: Mapped[Optional[str]] = mapped_column(sa.String(50))
    created_by: Mapped[Optional[int]] = mapped_column(sa.Integer, sa.ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )

    def __repr__(self) -> str:
        return f"<WorkingSaturday {self.work_date} {self.start_time}-{self.end_time}>"
