"""Enums and constants for the leave portal — matching stored string values."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    HR = "HR"
    ADMIN = "ADMIN"


class AuthMode(str, enum.Enum):
    LOCAL = "LOCAL"
    LDAP = "LDAP"
    AZURE = "AZURE"
    HYBRID = "HYBRID"


# Login methods offered per mode
MICROSOFT_LOGIN_MODES = frozenset({AuthMode.AZURE, AuthMode.HYBRID})
CREDENTIAL_LOGIN_MODES = frozenset({AuthMode.LOCAL, AuthMode.LDAP, AuthMode.HYBRID})

# Role sets used by route guards
HR_ROLES = (UserRole.HR, UserRole.ADMIN)
MANAGER_ROLES = (UserRole.MANAGER,)
ADMIN_ROLES = (UserRole.ADMIN,)


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    VACATION = "VACATION"
    SICK = "SICK"
    PERSONAL = "PERSONAL"
    MATERNITY = "MATERNITY"
    MILITARY = "MILITARY"
    ORDINATION = "ORDINATION"
    STERILIZATION = "STERILIZATION"
    TRAINING = "TRAINING"
    OTHER = "OTHER"


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class TimeSlot(str, enum.Enum):
    FULL_DAY = "FULL_DAY"
    HALF_MORNING = "HALF_MORNING"
    HALF_AFTERNOON = "HALF_AFTERNOON"
    HOURLY = "HOURLY"


class ApprovalAction(str, enum.Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


HALF_DAY_SLOTS = frozenset({TimeSlot.HALF_MORNING, TimeSlot.HALF_AFTERNOON})

# Leave types that never draw on a balance
UNMETERED_LEAVE_TYPES = frozenset({LeaveType.OTHER})

# Statuses that hold calendar days (overlap checks)
BLOCKING_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)

VACATION_MIN_TENURE_YEARS = 1
LUNCH_START = "12:00"
LUNCH_END = "13:00"


# ── Audit ───────────────────────────────────────────────────────────

class AuditAction(str, enum.Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    RESET_PASSWORD = "RESET_PASSWORD"
    CHANGE_PASSWORD = "CHANGE_PASSWORD"
    CREATE_WORKING_SATURDAY = "CREATE_WORKING_SATURDAY"
    DELETE_WORKING_SATURDAY = "DELETE_WORKING_SATURDAY"
    CREATE_DELEGATE = "CREATE_DELEGATE"
    CANCEL_DELEGATE = "CANCEL_DELEGATE"
    CREATE_LEAVE_REQUEST = "CREATE_LEAVE_REQUEST"
    CANCEL_LEAVE_REQUEST = "CANCEL_LEAVE_REQUEST"
    APPROVE_LEAVE = "APPROVE_LEAVE"
    REJECT_LEAVE = "REJECT_LEAVE"
    UPDATE_SETTINGS = "UPDATE_SETTINGS"


class AuditTarget(str, enum.Enum):
    USERS = "users"
    WORKING_SATURDAYS = "working_saturdays"
    DELEGATE_APPROVERS = "delegate_approvers"
    SYSTEM_SETTINGS = "system_settings"
    LEAVE_REQUESTS = "leave_requests"


# ── Delegates ───────────────────────────────────────────────────────

class DelegateStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    UPCOMING = "UPCOMING"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


# ── System settings keys ────────────────────────────────────────────

SETTING_AUTH_MODE = "AUTH_MODE"
SETTING_LDAP_URL = "LDAP_URL"
SETTING_LDAP_DOMAIN = "LDAP_DOMAIN"
SETTING_LDAP_BASE_DN = "LDAP_BASE_DN"
SETTING_LDAP_BIND_DN = "LDAP_BIND_DN"
SETTING_AZURE_AD_ENABLED = "AZURE_AD_ENABLED"
SETTING_AZURE_AD_TENANT_ID = "AZURE_AD_TENANT_ID"
SETTING_AZURE_AD_CLIENT_ID = "AZURE_AD_CLIENT_ID"
SETTING_LEAVE_ADVANCE_DAYS = "LEAVE_ADVANCE_DAYS"
SETTING_LEAVE_SICK_CERT_DAYS = "LEAVE_SICK_CERT_DAYS"
SETTING_WORK_HOURS_PER_DAY = "WORK_HOURS_PER_DAY"
SETTING_LEAVE_QUOTA_PREFIX = "LEAVE_QUOTA_"

# Written only through the ADMIN auth-settings route
AUTH_SETTING_KEYS = frozenset({
    SETTING_AUTH_MODE,
    SETTING_LDAP_URL,
    SETTING_LDAP_DOMAIN,
    SETTING_LDAP_BASE_DN,
    SETTING_LDAP_BIND_DN,
    SETTING_AZURE_AD_ENABLED,
    SETTING_AZURE_AD_TENANT_ID,
    SETTING_AZURE_AD_CLIENT_ID,
})

# Single source of truth for leave-rule fallbacks
DEFAULT_LEAVE_RULES: dict[str, int] = {
    SETTING_LEAVE_ADVANCE_DAYS: 3,
    SETTING_LEAVE_SICK_CERT_DAYS: 3,
}
DEFAULT_WORK_HOURS_PER_DAY = 8.0


# ── Misc constants ──────────────────────────────────────────────────

SEARCH_MIN_CHARS = 2
SEARCH_MAX_RESULTS = 10
PASSWORD_MIN_LENGTH = 6
BCRYPT_ROUNDS = 10
DEFAULT_SATURDAY_START = "09:00"
DEFAULT_SATURDAY_END = "12:00"

# Largest value an INTEGER id column holds
MAX_ROW_ID = 2**31 - 1
