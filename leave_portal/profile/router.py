"""Profile router — the caller's own record."""

from fastapi import APIRouter, Depends, Request

from leave_portal.auth.dependencies import Principal, require_session
from leave_portal.common.audit import client_ip
from leave_portal.common.responses import Envelope, SuccessResponse, ok
from leave_portal.database import Gateway, get_gateway
from leave_portal.profile.schemas import PasswordChangeRequest, ProfileOut
from leave_portal.profile.service import ProfileService

router = APIRouter(prefix="", tags=["profile"])


# ── GET "" — own profile ────────────────────────────────────────────

@router.get("", response_model=Envelope[ProfileOut])
async def get_profile(
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    row = await ProfileService.get_profile(gateway, principal)
    return ok(ProfileOut(**row))


# ── POST /password — self-service change ────────────────────────────

@router.post("/password", response_model=SuccessResponse)
async def change_password(
    body: PasswordChangeRequest,
    request: Request,
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    await ProfileService.change_password(
        gateway, principal, body.current_password, body.new_password, client_ip(request),
    )
    return SuccessResponse(message="Password changed successfully.")
