"""Leave Pydantic schemas — requests, approvals, cancellation, balances."""

from datetime import date, datetime, time
from typing import Optional

from pydantic import Field, field_validator, model_validator

from leave_portal.common.constants import (
    MAX_ROW_ID,
    ApprovalAction,
    LeaveStatus,
    LeaveType,
    TimeSlot,
)
from leave_portal.common.responses import CamelModel


# ── Requests ────────────────────────────────────────────────────────

class LeaveRequestCreate(CamelModel):
    """An employee's own leave request.

    The charged amount is computed by the server from the dates and the
    slot; half-day and hourly requests cover a single day.
    """

    leave_type: LeaveType
    start_date: date
    end_date: date
    time_slot: TimeSlot = TimeSlot.FULL_DAY
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: str = Field(..., min_length=1, max_length=1000)
    has_medical_cert: bool = False

    @field_validator("reason")
    @classmethod
    def _reason_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Reason is required")
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def _naive_time(cls, value: Optional[time]) -> Optional[time]:
        if value is not None and value.tzinfo is not None:
            raise ValueError("Time must not carry a UTC offset")
        return value

    @model_validator(mode="after")
    def _check_shape(self) -> "LeaveRequestCreate":
        if self.end_date < self.start_date:
            raise ValueError("endDate must be on or after startDate")
        if self.time_slot != TimeSlot.FULL_DAY and self.end_date != self.start_date:
            raise ValueError("Half-day and hourly leave cover a single day")
        if self.time_slot == TimeSlot.HOURLY:
            if self.start_time is None or self.end_time is None:
                raise ValueError("Hourly leave needs startTime and endTime")
            if self.end_time <= self.start_time:
                raise ValueError("endTime must be later than startTime")
        return self


class LeaveCancelRequest(CamelModel):
    leave_id: int = Field(..., gt=0, le=MAX_ROW_ID)


class LeaveDecision(CamelModel):
    leave_id: int = Field(..., gt=0, le=MAX_ROW_ID)
    action: ApprovalAction
    rejection_reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def _reason_for_rejection(self) -> "LeaveDecision":
        if self.action == ApprovalAction.REJECT and not (self.rejection_reason or "").strip():
            raise ValueError("rejectionReason is required when rejecting")
        return self


# ── Responses ───────────────────────────────────────────────────────

class LeaveRequestOut(CamelModel):
    id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    time_slot: TimeSlot
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    usage_amount: float
    reason: str
    has_medical_cert: bool
    status: LeaveStatus
    approver_id: Optional[int] = None
    approver_name: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None


class PendingLeaveOut(LeaveRequestOut):
    """A request awaiting the caller's decision, with the requester's identity."""

    user_id: int
    employee_name: str
    employee_id: str
    department: Optional[str] = None


class LeaveRequestCreated(CamelModel):
    id: int
    status: LeaveStatus
    usage_amount: float
    year_splits: dict[int, float]


class LeaveBalanceOut(CamelModel):
    leave_type: LeaveType
    year: int
    entitlement: float
    used: float
    remaining: float
    carry_over: float
    is_auto_created: bool
