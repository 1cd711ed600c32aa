"""User ORM model: identity, credentials, role, and reporting line."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leave_portal.common.constants import UserRole
from leave_portal.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(sa.String(50), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(sa.String(255))
    # bcrypt hash; NULL for directory-only accounts
    password: Mapped[Optional[str]] = mapped_column(sa.String(255))
    first_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(sa.String(100), nullable=False, server_default="")
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role", native_enum=False, length=20),
        nullable=False,
        server_default=UserRole.EMPLOYEE.value,
    )
    company: Mapped[Optional[str]] = mapped_column(sa.String(50))
    department: Mapped[Optional[str]] = mapped_column(sa.String(150))
    gender: Mapped[Optional[str]] = mapped_column(sa.String(1))
    start_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    department_head_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("users.id", name="fk_users_department_head"),
    )
    auth_provider: Mapped[str] = mapped_column(sa.String(20), server_default="LOCAL")
    is_active: Mapped[bool] = mapped_column(sa.Boolean, server_default=sa.true(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )

    # ── Relationships ───────────────────────────────────────────────
    department_head: Mapped[Optional[User]] = relationship(
        remote_side=[id], foreign_keys=[department_head_id],
    )

    __table_args__ = (
        sa.CheckConstraint(
            "department_head_id IS NULL OR department_head_id <> id",
            name="ck_users_manager_not_self",
        ),
        sa.Index("ix_users_department", "department"),
    )

    def __repr__(self) -> str:
        return f"<User {self.employee_id!r} ({self.role})>"
