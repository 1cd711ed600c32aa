"""Auth router — login-page mode flags, credential login, auth event log, delegate flag."""


from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from leave_portal.app_settings.service import SettingsService
from leave_portal.auth.dependencies import Principal, require_session
from leave_portal.auth.schemas import (
    AuthLogRequest,
    AuthModeResponse,
    DelegateCheckOut,
    LoginRequest,
    LoginResponse,
    UserSummary,
)
from leave_portal.auth.service import AuthService, create_access_token
from leave_portal.common.audit import client_ip, log_audit
from leave_portal.common.constants import AuditAction, AuditTarget, UserRole
from leave_portal.common.rate_limit import limiter
from leave_portal.common.responses import Envelope, SuccessResponse, ok
from leave_portal.config import settings
from leave_portal.database import Gateway, get_gateway

router = APIRouter(prefix="", tags=["auth"])


# ── GET /mode — public login-page flags ─────────────────────────────

@router.get("/mode", response_model=AuthModeResponse)
async def auth_mode(gateway: Gateway = Depends(get_gateway)):
    """Which login methods the login page should offer."""
    auth_settings = await SettingsService.resolve_auth_mode(gateway)
    return AuthModeResponse(
        auth_mode=auth_settings.auth_mode,
        show_microsoft_button=auth_settings.show_microsoft_button,
        show_credentials_form=auth_settings.show_credentials_form,
    )


# ── POST /verify — local credential login ──────────────────────────

@router.post("/verify", response_model=Envelope[LoginResponse])
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def verify_credentials(
    request: Request,
    body: LoginRequest,
    gateway: Gateway = Depends(get_gateway),
):
    """Check an employee id / password pair and issue a session token."""
    user = await AuthService.verify_credentials(gateway, body.employee_id, body.password)
    token, expires_in = create_access_token(
        user["id"], UserRole(user["role"]), user["employee_id"],
    )
    return ok(
        LoginResponse(
            access_token=token,
            expires_in=expires_in,
            user=UserSummary(**user),
        )
    )


# ── POST /log — record LOGIN / LOGOUT ───────────────────────────────

@router.post("/log", response_model=SuccessResponse)
async def log_auth_event(
    body: AuthLogRequest,
    request: Request,
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    await log_audit(
        gateway,
        user_id=principal.id,
        action=AuditAction(body.action),
        target_table=AuditTarget.USERS,
        target_id=principal.id,
        new_value={
            "employeeId": principal.employee_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        ip_address=client_ip(request),
    )
    return SuccessResponse()


# ── GET /delegate-check — sidebar flag ──────────────────────────────

@router.get("/delegate-check", response_model=Envelope[DelegateCheckOut])
async def delegate_check(
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    """Whether the caller currently stands in as a delegate approver."""
    is_delegate = await AuthService.is_active_delegate(gateway, principal.id)
    return ok(DelegateCheckOut(is_delegate=is_delegate))
