"""Leave router — request, history, cancel, pending approvals, approve/reject, balances.

Every route needs a session. Approval authority (HR / ADMIN, the
requester's department head, or that head's active delegate) is checked in
the service because it depends on the request being decided.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from leave_portal.auth.dependencies import Principal, require_session
from leave_portal.common.audit import client_ip
from leave_portal.common.constants import LeaveStatus, LeaveType
from leave_portal.common.exceptions import BadRequestException
from leave_portal.common.responses import Envelope, SuccessResponse, ok
from leave_portal.database import Gateway, get_gateway
from leave_portal.leave.schemas import (
    LeaveBalanceOut,
    LeaveCancelRequest,
    LeaveDecision,
    LeaveRequestCreate,
    LeaveRequestCreated,
    LeaveRequestOut,
    PendingLeaveOut,
)
from leave_portal.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])

# Query value meaning "no filter"
ALL = "ALL"


def _filter(enum_cls, raw: Optional[str], field: str):
    if raw is None or raw.upper() == ALL:
        return None
    try:
        return enum_cls(raw.upper())
    except ValueError:
        raise BadRequestException(
            message="Request validation failed.",
            errors={field: [f"Unknown value '{raw}'."]},
        ) from None


# ── POST /request ───────────────────────────────────────────────────

@router.post("/request", response_model=Envelope[LeaveRequestCreated], status_code=201)
async def request_leave(
    body: LeaveRequestCreate,
    request: Request,
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    """File a leave request. The charged amount is computed server-side."""
    created = await LeaveService.create_request(gateway, principal, body, client_ip(request))
    return ok(LeaveRequestCreated(**created))


# ── GET /history ────────────────────────────────────────────────────

@router.get("/history", response_model=Envelope[list[LeaveRequestOut]])
async def leave_history(
    status: Optional[str] = Query(None, max_length=20),
    leave_type: Optional[str] = Query(None, alias="leaveType", max_length=20),
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    """The caller's own requests, newest first. ``ALL`` disables a filter."""
    rows = await LeaveService.get_history(
        gateway,
        principal,
        status=_filter(LeaveStatus, status, "status"),
        leave_type=_filter(LeaveType, leave_type, "leaveType"),
    )
    return ok([LeaveRequestOut(**row) for row in rows])


# ── POST /cancel ────────────────────────────────────────────────────

@router.post("/cancel", response_model=SuccessResponse)
async def cancel_leave(
    body: LeaveCancelRequest,
    request: Request,
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    await LeaveService.cancel(gateway, principal, body.leave_id, client_ip(request))
    return SuccessResponse(message="Leave request cancelled.")


# ── GET /pending ────────────────────────────────────────────────────

@router.get("/pending", response_model=Envelope[list[PendingLeaveOut]])
async def pending_approvals(
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    rows = await LeaveService.get_pending(gateway, principal)
    return ok([PendingLeaveOut(**row) for row in rows])


# ── POST /approve — approve or reject ───────────────────────────────

@router.post("/approve", response_model=SuccessResponse)
async def decide_leave(
    body: LeaveDecision,
    request: Request,
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    status = await LeaveService.decide(gateway, principal, body, client_ip(request))
    return SuccessResponse(message=f"Leave request {status.value.lower()}.")


# ── GET /balance ────────────────────────────────────────────────────

@router.get("/balance", response_model=Envelope[list[LeaveBalanceOut]])
async def leave_balance(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    principal: Principal = Depends(require_session),
    gateway: Gateway = Depends(get_gateway),
):
    """The caller's balances for *year* (default: current year)."""
    rows = await LeaveService.get_balances(gateway, principal, year or date.today().year)
    return ok([LeaveBalanceOut(**row) for row in rows])
