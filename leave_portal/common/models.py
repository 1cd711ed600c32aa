"""Common ORM models: AuditLog, SystemSetting."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from leave_portal.database import Base


class AuditLog(Base):
    """Append-only record of security-relevant actions."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        sa.Index("ix_audit_logs_user_id", "user_id"),
        sa.Index("ix_audit_logs_target", "target_table", "target_id"),
        sa.Index("ix_audit_logs_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(sa.Integer, sa.ForeignKey("users.id"))
    action: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    target_table: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    target_id: Mapped[Optional[int]] = mapped_column(sa.Integer)
    old_value: Mapped[Optional[str]] = mapped_column(sa.Text)
    new_value: Mapped[Optional[str]] = mapped_column(sa.Text)
    ip_address: Mapped[Optional[str]] = mapped_column(sa.String(45))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.target_table}/{self.target_id} by {self.user_id}>"


class SystemSetting(Base):
    """String key/value configuration row; callers parse and default."""

    __tablename__ = "system_settings"

    setting_key: Mapped[str] = mapped_column(sa.String(100), primary_key=True)
    setting_value: Mapped[Optional[str]] = mapped_column(sa.Text)
    description: Mapped[Optional[str]] = mapped_column(sa.String(255))
    updated_by: Mapped[Optional[int]] = mapped_column(sa.Integer, sa.ForeignKey("users.id"))
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )
