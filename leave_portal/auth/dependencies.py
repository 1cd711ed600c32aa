"""Auth dependencies — session resolution and role enforcement.

Every protected handler receives the caller as an explicit ``Principal``
argument produced by :func:`require_session` or :func:`require_role`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError

from leave_portal.auth.service import decode_access_token
from leave_portal.common.constants import UserRole
from leave_portal.common.exceptions import ForbiddenException, UnauthorizedException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""

    id: int
    role: UserRole
    employee_id: str


def _extract_bearer(request: Request) -> Optional[str]:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


# ── Core dependencies ───────────────────────────────────────────────

async def get_optional_principal(request: Request) -> Optional[Principal]:
    """Resolve the session, or None for anonymous / invalid / expired tokens."""
    token = _extract_bearer(request)
    if token is None:
        return None

    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        logger.debug("Rejected expired session token")
        return None
    except JWTError:
        logger.info("Rejected malformed session token")
        return None

    if payload.get("type") != "access":
        return None

    # Unknown roles never authenticate
    try:
        return Principal(
            id=int(payload["sub"]),
            role=UserRole(payload["role"]),
            employee_id=str(payload.get("employee_id") or ""),
        )
    except (KeyError, TypeError, ValueError):
        logger.warning("Rejected session token with invalid claims")
        return None


async def require_session(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """401 unless the request carries a valid session."""
    if principal is None:
        raise UnauthorizedException()
    return principal


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership.

    Membership is exact: no role implies another.
    """
    if not allowed_roles:
        raise ValueError("require_role() needs at least one role")
    allowed = frozenset(allowed_roles)

    async def _check(principal: Principal = Depends(require_session)) -> Principal:
        if principal.role not in allowed:
            raise ForbiddenException(
                message=f"Role '{principal.role.value}' is not permitted for this action.",
            )
        return principal

    return _check
