"""Common module — shared utilities for the leave portal."""

from leave_portal.common.audit import client_ip, log_audit
from leave_portal.common.constants import (
    DEFAULT_LEAVE_RULES,
    HR_ROLES,
    MANAGER_ROLES,
    AuditAction,
    AuditTarget,
    AuthMode,
    DelegateStatus,
    UserRole,
)
from leave_portal.common.exceptions import (
    AppException,
    BadRequestException,
    ConflictError,
    DataAccessError,
    DatabaseUnavailableError,
    ForbiddenException,
    NotFoundException,
    QueryExecutionError,
    UnauthorizedException,
    register_exception_handlers,
)

__all__ = [
    # Audit
    "client_ip",
    "log_audit",
    # Constants / Enums
    "AuditAction",
    "AuditTarget",
    "AuthMode",
    "DelegateStatus",
    "UserRole",
    "DEFAULT_LEAVE_RULES",
    "HR_ROLES",
    "MANAGER_ROLES",
    # Exceptions
    "AppException",
    "BadRequestException",
    "ConflictError",
    "DataAccessError",
    "DatabaseUnavailableError",
    "ForbiddenException",
    "NotFoundException",
    "QueryExecutionError",
    "UnauthorizedException",
    "register_exception_handlers",
]
