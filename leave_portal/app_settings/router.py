"""System settings router — leave policy thresholds."""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from leave_portal.app_settings.schemas import LeaveRulesOut
from leave_portal.app_settings.service import SettingsService
from leave_portal.auth.dependencies import Principal, require_session
from leave_portal.common.responses import Envelope, ok
from leave_portal.database import Gateway, get_gateway

router = APIRouter(prefix="", tags=["settings"])


# ── GET /rules ──────────────────────────────────────────────────────

@router.get("/rules", response_model=Envelope[LeaveRulesOut])
async def leave_rules(
    _principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    """Advance-notice and sick-certificate thresholds, with defaults filled in."""
    rules = await SettingsService.get_leave_rules(gateway)
    return ok(LeaveRulesOut(**asdict(rules)))
