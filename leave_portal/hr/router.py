"""HR router — departments, password resets, working Saturdays, system settings.

Routes:
    /departments          — Distinct department names (any session)
    /employees/password   — Reset an employee's password (HR / ADMIN)
    /working-saturdays    — List (any session), add / remove (HR / ADMIN)
    /settings             — Read / write general settings and quotas (HR / ADMIN)
    /settings/auth        — Read (HR / ADMIN), write (ADMIN) login settings
"""

from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from leave_portal.app_settings.schemas import (
    AuthSettingsOut,
    AuthSettingsUpdate,
    SettingOut,
    SettingsUpdate,
)
from leave_portal.app_settings.service import SettingsService
from leave_portal.auth.dependencies import Principal, require_role, require_session
from leave_portal.common.audit import client_ip
from leave_portal.common.constants import ADMIN_ROLES, HR_ROLES, MAX_ROW_ID
from leave_portal.common.responses import Envelope, SuccessResponse, ok
from leave_portal.database import Gateway, get_gateway
from leave_portal.hr.schemas import PasswordResetRequest
from leave_portal.hr.service import HRService
from leave_portal.working_saturdays.schemas import (
    WorkingSaturdayCreate,
    WorkingSaturdayCreated,
    WorkingSaturdayOut,
)
from leave_portal.working_saturdays.service import WorkingSaturdayService

router = APIRouter(prefix="", tags=["hr"])


# ── GET /departments ────────────────────────────────────────────────

@router.get("/departments", response_model=Envelope[list[str]])
async def list_departments(
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    return ok(await HRService.list_departments(gateway))


# ── POST /employees/password — HR reset ─────────────────────────────

@router.post("/employees/password", response_model=SuccessResponse)
async def reset_employee_password(
    body: PasswordResetRequest,
    request: Request,
    principal: Principal = Depends(require_role(*HR_ROLES)),
    gateway: Gateway = Depends(get_gateway),
):
    await HRService.reset_password(
        gateway, principal, body.user_id, body.new_password, client_ip(request),
    )
    return SuccessResponse(message="Password reset successfully.")


# ═════════════════════════════════════════════════════════════════════
# Working Saturdays
# ═════════════════════════════════════════════════════════════════════


# ── GET /working-saturdays ──────────────────────────────────────────

@router.get("/working-saturdays", response_model=Envelope[list[WorkingSaturdayOut]])
async def list_working_saturdays(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    """Working Saturdays in *year* (default: current year), optionally one month."""
    rows = await WorkingSaturdayService.list_period(gateway, year or date.today().year, month)
    return ok([WorkingSaturdayOut(**row) for row in rows])


# ── POST /working-saturdays ─────────────────────────────────────────

@router.post(
    "/working-saturdays",
    response_model=Envelope[WorkingSaturdayCreated],
    status_code=201,
)
async def add_working_saturday(
    body: WorkingSaturdayCreate,
    request: Request,
    principal: Principal = Depends(require_role(*HR_ROLES)),
    gateway: Gateway = Depends(get_gateway),
):
    created = await WorkingSaturdayService.create(gateway, principal, body, client_ip(request))
    return ok(WorkingSaturdayCreated(**created))


# ── DELETE /working-saturdays?id= | ?date= ──────────────────────────

@router.delete("/working-saturdays", response_model=SuccessResponse)
async def remove_working_saturday(
    request: Request,
    ws_id: Optional[int] = Query(None, alias="id", gt=0, le=MAX_ROW_ID),
    work_date: Optional[date] = Query(None, alias="date"),
    principal: Principal = Depends(require_role(*HR_ROLES)),
    gateway: Gateway = Depends(get_gateway),
):
    await WorkingSaturdayService.delete(
        gateway, principal, ws_id=ws_id, work_date=work_date, ip_address=client_ip(request),
    )
    return SuccessResponse(message="Working Saturday removed.")


# ═════════════════════════════════════════════════════════════════════
# Settings
# ═════════════════════════════════════════════════════════════════════


# ── GET /settings ───────────────────────────────────────────────────

@router.get("/settings", response_model=Envelope[dict[str, SettingOut]])
async def list_settings(
    principal: Principal = Depends(require_role(*HR_ROLES)),
    gateway: Gateway = Depends(get_gateway),
):
    """Every stored setting keyed by name."""
    rows = await SettingsService.list_settings(gateway)
    return ok({
        row["setting_key"]: SettingOut(
            value=row["setting_value"],
            description=row["description"],
            updated_at=row["updated_at"],
        )
        for row in rows
    })


# ── PUT /settings ───────────────────────────────────────────────────

@router.put("/settings", response_model=SuccessResponse)
async def update_settings(
    body: SettingsUpdate,
    request: Request,
    principal: Principal = Depends(require_role(*HR_ROLES)),
    gateway: Gateway = Depends(get_gateway),
):
    """Write general settings; ``LEAVE_QUOTA_<TYPE>`` also resets that year's entitlements."""
    count = await SettingsService.update_settings(
        gateway, principal, body.settings, client_ip(request),
    )
    return SuccessResponse(message=f"{count} setting(s) saved.")


# ── GET /settings/auth ──────────────────────────────────────────────

@router.get("/settings/auth", response_model=Envelope[AuthSettingsOut])
async def get_auth_settings(
    principal: Principal = Depends(require_role(*HR_ROLES)),
    gateway: Gateway = Depends(get_gateway),
):
    auth_settings = await SettingsService.get_auth_settings(gateway)
    return ok(AuthSettingsOut(
        **asdict(auth_settings),
        show_microsoft_button=auth_settings.show_microsoft_button,
        show_credentials_form=auth_settings.show_credentials_form,
    ))


# ── POST /settings/auth — ADMIN only ────────────────────────────────

@router.post("/settings/auth", response_model=SuccessResponse)
async def update_auth_settings(
    body: AuthSettingsUpdate,
    request: Request,
    principal: Principal = Depends(require_role(*ADMIN_ROLES)),
    gateway: Gateway = Depends(get_gateway),
):
    await SettingsService.update_auth_settings(
        gateway, principal, body.model_dump(exclude_unset=True), client_ip(request),
    )
    return SuccessResponse(message="Authentication settings saved.")
