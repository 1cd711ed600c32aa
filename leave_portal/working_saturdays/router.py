"""Public working-Saturday lookup used by leave-duration calculations."""

from datetime import date

from fastapi import APIRouter, Depends, Query

from leave_portal.common.exceptions import BadRequestException
from leave_portal.common.responses import Envelope, ok
from leave_portal.database import Gateway, get_gateway
from leave_portal.working_saturdays.schemas import WorkingSaturdayRangeItem
from leave_portal.working_saturdays.service import WorkingSaturdayService

router = APIRouter(prefix="", tags=["working-saturdays"])


# ── GET /range — inclusive date range ───────────────────────────────

@router.get("/range", response_model=Envelope[list[WorkingSaturdayRangeItem]])
async def working_saturdays_in_range(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    gateway: Gateway = Depends(get_gateway),
):
    if end_date < start_date:
        raise BadRequestException(
            message="endDate must not be before startDate.",
            errors={"endDate": ["Must not be before startDate."]},
        )
    rows = await WorkingSaturdayService.list_range(gateway, start_date, end_date)
    return ok([WorkingSaturdayRangeItem(**row) for row in rows])
