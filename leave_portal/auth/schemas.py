"""Auth Pydantic schemas for request / response validation."""

from typing import Literal, Optional

from pydantic import Field

from leave_portal.common.constants import AuthMode, UserRole
from leave_portal.common.responses import CamelModel


# ── Requests ────────────────────────────────────────────────────────

class LoginRequest(CamelModel):
    employee_id: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)


class AuthLogRequest(CamelModel):
    action: Literal["LOGIN", "LOGOUT"]


# ── Responses ───────────────────────────────────────────────────────

class AuthModeResponse(CamelModel):
    auth_mode: AuthMode
    show_microsoft_button: bool
    show_credentials_form: bool


class DelegateCheckOut(CamelModel):
    is_delegate: bool


class UserSummary(CamelModel):
    id: int
    employee_id: str
    email: Optional[str] = None
    first_name: str
    last_name: str
    role: UserRole
    company: Optional[str] = None
    department: Optional[str] = None
    department_head_id: Optional[int] = None


class LoginResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserSummary
