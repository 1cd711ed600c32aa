"""Auth service — password hashing, session tokens, credential checks, delegate status."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
from fastapi.concurrency import run_in_threadpool
from jose import jwt
from sqlalchemy import select

from leave_portal.common.constants import BCRYPT_ROUNDS, UserRole
from leave_portal.common.exceptions import UnauthorizedException
from leave_portal.config import settings
from leave_portal.database import Gateway
from leave_portal.manager.models import DelegateApprover
from leave_portal.users.models import User

logger = logging.getLogger(__name__)

_USER_SUMMARY_COLUMNS = (
    User.id,
    User.employee_id,
    User.email,
    User.password,
    User.first_name,
    User.last_name,
    User.role,
    User.company,
    User.department,
    User.department_head_id,
)


# ── Password hashing ────────────────────────────────────────────────

def _encode(plain: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return plain.encode("utf-8")[:72]


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def check_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store
        return False


# ── Session tokens ──────────────────────────────────────────────────

def create_access_token(user_id: int, role: UserRole, employee_id: str) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    expires_in = settings.JWT_EXPIRY_MINUTES * 60
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "employee_id": employee_id,
        "type": "access",
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRY_MINUTES),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a session token; raises ``jose.JWTError`` on failure."""
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


# ── Service ─────────────────────────────────────────────────────────

class AuthService:
    """Static service class for authentication queries."""

    @staticmethod
    async def verify_credentials(
        gateway: Gateway, employee_id: str, password: str,
    ) -> dict[str, Any]:
        """Return the active user row matching the credentials, or raise 401."""
        rows = await gateway.query(
            select(*_USER_SUMMARY_COLUMNS).where(
                User.employee_id == employee_id,
                User.is_active.is_(True),
            )
        )
        if not rows:
            logger.info("Login rejected: unknown or inactive employee %s", employee_id)
            raise UnauthorizedException(
                message="Invalid employee id or password.",
                error_code="invalid_credentials",
            )

        user = rows[0]
        if not await run_in_threadpool(check_password, password, user.pop("password")):
            logger.info("Login rejected: wrong password for employee %s", employee_id)
            raise UnauthorizedException(
                message="Invalid employee id or password.",
                error_code="invalid_credentials",
            )
        return user

    @staticmethod
    async def is_active_delegate(
        gateway: Gateway, user_id: int, today: Optional[date] = None,
    ) -> bool:
        """True when *user_id* currently stands in for some manager."""
        today = today or date.today()
        rows = await gateway.query(
            select(DelegateApprover.id)
            .where(
                DelegateApprover.delegate_user_id == user_id,
                DelegateApprover.is_active.is_(True),
                DelegateApprover.start_date <= today,
                DelegateApprover.end_date >= today,
            )
            .limit(1)
        )
        return bool(rows)
