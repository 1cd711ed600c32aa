"""Profile Pydantic schemas."""

from datetime import date
from typing import Optional

from pydantic import Field

from leave_portal.common.constants import PASSWORD_MIN_LENGTH, UserRole
from leave_portal.common.responses import CamelModel


class ProfileOut(CamelModel):
    employee_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    company: Optional[str] = None
    department: Optional[str] = None
    role: UserRole
    gender: Optional[str] = None
    start_date: Optional[date] = None


class PasswordChangeRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=72)
