"""HR Pydantic schemas."""

from pydantic import Field

from leave_portal.common.constants import MAX_ROW_ID
from leave_portal.common.responses import CamelModel


class PasswordResetRequest(CamelModel):
    user_id: int = Field(..., gt=0, le=MAX_ROW_ID)
    # bcrypt ignores everything past 72 bytes
    new_password: str = Field(..., min_length=1, max_length=72)
