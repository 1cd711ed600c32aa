"""Working-Saturday Pydantic schemas."""

from datetime import date, datetime, time
from typing import Optional

from pydantic import Field, field_validator

from leave_portal.common.responses import CamelModel


# ── Requests ────────────────────────────────────────────────────────

class WorkingSaturdayCreate(CamelModel):
    """HR request to mark a Saturday as a working day.

    Times default to the standard half-day when omitted. Times are local
    wall-clock values; a UTC offset is rejected.
    """

    work_date: date = Field(..., alias="date")
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    description: Optional[str] = Field(None, max_length=255)
    company: Optional[str] = Field(None, max_length=50)

    @field_validator("start_time", "end_time")
    @classmethod
    def _naive_time(cls, value: Optional[time]) -> Optional[time]:
        if value is not None and value.tzinfo is not None:
            raise ValueError("Time must not carry a UTC offset")
        return value


# ── Responses ───────────────────────────────────────────────────────

class WorkingSaturdayRangeItem(CamelModel):
    """Compact row consumed by leave-duration calculations."""

    work_date: date = Field(..., alias="date")
    start_time: time
    end_time: time
    work_hours: float


class WorkingSaturdayOut(WorkingSaturdayRangeItem):
    id: int
    description: Optional[str] = None
    company: Optional[str] = None
    created_by_name: Optional[str] = None
    created_at: Optional[datetime] = None


class WorkingSaturdayCreated(WorkingSaturdayRangeItem):
    id: int
