"""Manager router — delegate picker and delegate-approver assignments (MANAGER only)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from leave_portal.auth.dependencies import Principal, require_role
from leave_portal.common.audit import client_ip
from leave_portal.common.constants import MANAGER_ROLES, MAX_ROW_ID
from leave_portal.common.responses import Envelope, SuccessResponse, ok
from leave_portal.database import Gateway, get_gateway
from leave_portal.manager.schemas import (
    DelegateCandidate,
    DelegateCreate,
    DelegateCreated,
    DelegateOut,
)
from leave_portal.manager.service import ManagerService

router = APIRouter(prefix="", tags=["manager"])

require_manager = require_role(*MANAGER_ROLES)


# ── GET /delegates/search?q= ────────────────────────────────────────

@router.get("/delegates/search", response_model=Envelope[list[DelegateCandidate]])
async def search_delegates(
    q: Optional[str] = Query(None, max_length=100),
    principal: Principal = Depends(require_manager),
    gateway: Gateway = Depends(get_gateway),
):
    rows = await ManagerService.search_candidates(gateway, principal, q)
    return ok([DelegateCandidate(**row) for row in rows])


# ── GET /delegates ──────────────────────────────────────────────────

@router.get("/delegates", response_model=Envelope[list[DelegateOut]])
async def list_delegates(
    principal: Principal = Depends(require_manager),
    gateway: Gateway = Depends(get_gateway),
):
    rows = await ManagerService.list_delegates(gateway, principal)
    return ok([DelegateOut(**row) for row in rows])


# ── POST /delegates ─────────────────────────────────────────────────

@router.post("/delegates", response_model=Envelope[DelegateCreated], status_code=201)
async def create_delegate(
    body: DelegateCreate,
    request: Request,
    principal: Principal = Depends(require_manager),
    gateway: Gateway = Depends(get_gateway),
):
    created = await ManagerService.create_delegate(gateway, principal, body, client_ip(request))
    return ok(DelegateCreated(**created))


# ── DELETE /delegates?id= — soft cancel ─────────────────────────────

@router.delete("/delegates", response_model=SuccessResponse)
async def cancel_delegate(
    request: Request,
    delegate_id: int = Query(..., alias="id", gt=0, le=MAX_ROW_ID),
    principal: Principal = Depends(require_manager),
    gateway: Gateway = Depends(get_gateway),
):
    await ManagerService.cancel_delegate(gateway, principal, delegate_id, client_ip(request))
    return SuccessResponse(message="Delegate assignment cancelled.")
