"""Manager Pydantic schemas — delegate search and delegate assignments."""

from datetime import date, datetime
from typing import Optional

from pydantic import Field, model_validator

from leave_portal.common.constants import MAX_ROW_ID, DelegateStatus
from leave_portal.common.responses import CamelModel


# ── Requests ────────────────────────────────────────────────────────

class DelegateCreate(CamelModel):
    delegate_user_id: int = Field(..., gt=0, le=MAX_ROW_ID)
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_dates(self) -> "DelegateCreate":
        if self.end_date < self.start_date:
            raise ValueError("endDate must be on or after startDate")
        return self


# ── Responses ───────────────────────────────────────────────────────

class DelegateCandidate(CamelModel):
    """One row of the delegate picker."""

    id: int
    name: str
    department: Optional[str] = None
    employee_id: str


class DelegateOut(CamelModel):
    id: int
    delegate_user_id: int
    delegate_name: str
    department: Optional[str] = None
    employee_id: str
    start_date: date
    end_date: date
    is_active: bool
    status: DelegateStatus
    created_at: Optional[datetime] = None


class DelegateCreated(CamelModel):
    id: int
    delegate_name: str
