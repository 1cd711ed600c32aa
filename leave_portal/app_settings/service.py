"""Settings accessor — typed projections over the ``system_settings`` rows.

Values are stored as strings; every reader here parses and falls back to a
default rather than failing the request. Writers are HR / ADMIN only and
audited.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from leave_portal.auth.dependencies import Principal
from leave_portal.common.audit import log_audit
from leave_portal.common.constants import (
    AUTH_SETTING_KEYS,
    CREDENTIAL_LOGIN_MODES,
    DEFAULT_LEAVE_RULES,
    DEFAULT_WORK_HOURS_PER_DAY,
    MICROSOFT_LOGIN_MODES,
    SETTING_AUTH_MODE,
    SETTING_AZURE_AD_CLIENT_ID,
    SETTING_AZURE_AD_ENABLED,
    SETTING_AZURE_AD_TENANT_ID,
    SETTING_LDAP_BASE_DN,
    SETTING_LDAP_BIND_DN,
    SETTING_LDAP_DOMAIN,
    SETTING_LDAP_URL,
    SETTING_LEAVE_ADVANCE_DAYS,
    SETTING_LEAVE_QUOTA_PREFIX,
    SETTING_LEAVE_SICK_CERT_DAYS,
    SETTING_WORK_HOURS_PER_DAY,
    AuditAction,
    AuditTarget,
    AuthMode,
    LeaveType,
)
from leave_portal.common.exceptions import BadRequestException
from leave_portal.common.models import SystemSetting
from leave_portal.config import settings
from leave_portal.database import Gateway
from leave_portal.leave.models import LeaveBalance, LeaveQuota

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_SETTING_KEY = re.compile(r"^[A-Z][A-Z0-9_]{0,99}$")

# Served when the settings cannot be read at all
SAFE_AUTH_MODE = AuthMode.LOCAL

# Field name on the auth projection → settings key
AUTH_FIELD_KEYS: dict[str, str] = {
    "auth_mode": SETTING_AUTH_MODE,
    "ldap_url": SETTING_LDAP_URL,
    "ldap_domain": SETTING_LDAP_DOMAIN,
    "ldap_base_dn": SETTING_LDAP_BASE_DN,
    "ldap_bind_dn": SETTING_LDAP_BIND_DN,
    "azure_ad_enabled": SETTING_AZURE_AD_ENABLED,
    "azure_ad_tenant_id": SETTING_AZURE_AD_TENANT_ID,
    "azure_ad_client_id": SETTING_AZURE_AD_CLIENT_ID,
}


@dataclass(frozen=True)
class AuthSettings:
    """Projection read by the login page and the directory providers."""

    auth_mode: AuthMode
    ldap_url: str = ""
    ldap_domain: str = ""
    ldap_base_dn: str = ""
    ldap_bind_dn: str = ""
    azure_ad_enabled: bool = False
    azure_ad_tenant_id: str = ""
    azure_ad_client_id: str = ""

    @property
    def show_microsoft_button(self) -> bool:
        return self.auth_mode in MICROSOFT_LOGIN_MODES

    @property
    def show_credentials_form(self) -> bool:
        return self.auth_mode in CREDENTIAL_LOGIN_MODES


@dataclass(frozen=True)
class LeaveRules:
    advance_notice_days: int
    sick_cert_threshold: int


def parse_int_setting(value: Optional[str], default: int) -> int:
    """Lenient integer parse: leading digits count, zero or garbage → *default*."""
    if value is None:
        return default
    match = _LEADING_INT.match(value)
    if not match:
        return default
    return int(match.group(1)) or default


def parse_float_setting(value: Optional[str], default: float) -> float:
    try:
        parsed = float(value) if value is not None else default
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def parse_auth_mode(value: Optional[str], default: AuthMode) -> AuthMode:
    if not value:
        return default
    try:
        return AuthMode(value.strip().upper())
    except ValueError:
        logger.warning("Unknown AUTH_MODE %r; using %s", value, SAFE_AUTH_MODE.value)
        return SAFE_AUTH_MODE


def quota_leave_type(key: str) -> Optional[LeaveType]:
    """``LEAVE_QUOTA_SICK`` → ``LeaveType.SICK``; None for other keys."""
    if not key.startswith(SETTING_LEAVE_QUOTA_PREFIX):
        return None
    try:
        return LeaveType(key[len(SETTING_LEAVE_QUOTA_PREFIX):])
    except ValueError:
        return None


async def _upsert(
    conn: AsyncConnection, key: str, value: Optional[str], updated_by: int,
) -> None:
    result = await conn.execute(
        update(SystemSetting)
        .where(SystemSetting.setting_key == key)
        .values(setting_value=value, updated_by=updated_by, updated_at=func.now())
    )
    if result.rowcount == 0:
        await conn.execute(
            insert(SystemSetting).values(
                setting_key=key, setting_value=value, updated_by=updated_by,
            )
        )


async def _sync_quota(
    conn: AsyncConnection, leave_type: LeaveType, days: int, year: int,
) -> None:
    """New default for *leave_type*, applied to this year's balances too."""
    result = await conn.execute(
        update(LeaveQuota)
        .where(LeaveQuota.leave_type == leave_type)
        .values(default_days=days, updated_at=func.now())
    )
    if result.rowcount == 0:
        await conn.execute(insert(LeaveQuota).values(leave_type=leave_type, default_days=days))
    await conn.execute(
        update(LeaveBalance)
        .where(LeaveBalance.leave_type == leave_type, LeaveBalance.year == year)
        .values(
            entitlement=days,
            remaining=days - LeaveBalance.used,
            updated_at=func.now(),
        )
    )


class SettingsService:
    """Static service class for reading and writing system settings."""

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def get_setting_map(
        gateway: Gateway, keys: Optional[Iterable[str]] = None,
    ) -> dict[str, Optional[str]]:
        query = select(SystemSetting.setting_key, SystemSetting.setting_value)
        if keys is not None:
            query = query.where(SystemSetting.setting_key.in_(list(keys)))
        rows = await gateway.query(query)
        return {row["setting_key"]: row["setting_value"] for row in rows}

    @staticmethod
    async def list_settings(gateway: Gateway) -> list[dict[str, Any]]:
        return await gateway.query(
            select(
                SystemSetting.setting_key,
                SystemSetting.setting_value,
                SystemSetting.description,
                SystemSetting.updated_at,
            ).order_by(SystemSetting.setting_key)
        )

    @staticmethod
    async def get_auth_settings(gateway: Gateway) -> AuthSettings:
        values = await SettingsService.get_setting_map(gateway, AUTH_SETTING_KEYS)
        env_default = parse_auth_mode(settings.AUTH_MODE, SAFE_AUTH_MODE)
        return AuthSettings(
            auth_mode=parse_auth_mode(values.get(SETTING_AUTH_MODE), env_default),
            ldap_url=values.get(SETTING_LDAP_URL) or settings.LDAP_URL,
            ldap_domain=values.get(SETTING_LDAP_DOMAIN) or settings.LDAP_DOMAIN,
            ldap_base_dn=values.get(SETTING_LDAP_BASE_DN) or settings.LDAP_BASE_DN,
            ldap_bind_dn=values.get(SETTING_LDAP_BIND_DN) or settings.LDAP_BIND_DN,
            azure_ad_enabled=(values.get(SETTING_AZURE_AD_ENABLED) or "").lower() == "true",
            azure_ad_tenant_id=values.get(SETTING_AZURE_AD_TENANT_ID) or settings.AZURE_AD_TENANT_ID,
            azure_ad_client_id=values.get(SETTING_AZURE_AD_CLIENT_ID) or settings.AZURE_AD_CLIENT_ID,
        )

    @staticmethod
    async def resolve_auth_mode(gateway: Gateway) -> AuthSettings:
        """Auth settings for the public login page; never raises.

        Any read failure yields LOCAL mode (credentials form only).
        """
        try:
            return await SettingsService.get_auth_settings(gateway)
        except Exception:
            logger.exception("Could not read auth settings; serving %s", SAFE_AUTH_MODE.value)
            return AuthSettings(auth_mode=SAFE_AUTH_MODE)

    @staticmethod
    async def get_leave_rules(gateway: Gateway) -> LeaveRules:
        keys = (SETTING_LEAVE_ADVANCE_DAYS, SETTING_LEAVE_SICK_CERT_DAYS)
        values = await SettingsService.get_setting_map(gateway, keys)
        return LeaveRules(
            advance_notice_days=parse_int_setting(
                values.get(SETTING_LEAVE_ADVANCE_DAYS),
                DEFAULT_LEAVE_RULES[SETTING_LEAVE_ADVANCE_DAYS],
            ),
            sick_cert_threshold=parse_int_setting(
                values.get(SETTING_LEAVE_SICK_CERT_DAYS),
                DEFAULT_LEAVE_RULES[SETTING_LEAVE_SICK_CERT_DAYS],
            ),
        )

    @staticmethod
    async def get_work_hours_per_day(gateway: Gateway) -> float:
        values = await SettingsService.get_setting_map(gateway, (SETTING_WORK_HOURS_PER_DAY,))
        return parse_float_setting(values.get(SETTING_WORK_HOURS_PER_DAY), DEFAULT_WORK_HOURS_PER_DAY)

    # ── Writes ──────────────────────────────────────────────────────

    @staticmethod
    async def update_settings(
        gateway: Gateway,
        principal: Principal,
        values: Mapping[str, str],
        ip_address: Optional[str] = None,
        today: Optional[date] = None,
    ) -> int:
        """Write general settings; ``LEAVE_QUOTA_<TYPE>`` also resets that quota.

        Authentication keys are refused here.
        """
        errors: dict[str, list[str]] = {}
        for key in values:
            if not _SETTING_KEY.match(key):
                errors[key] = ["Keys are upper-case letters, digits and underscores."]
            elif key in AUTH_SETTING_KEYS:
                errors[key] = ["Authentication settings are changed through /api/hr/settings/auth."]
        if errors:
            raise BadRequestException(message="Some settings cannot be changed here.", errors=errors)

        year = (today or date.today()).year
        async with gateway.transaction() as conn:
            for key, value in values.items():
                await _upsert(conn, key, value, principal.id)
                leave_type = quota_leave_type(key)
                match = _LEADING_INT.match(value)
                if leave_type is not None and match:
                    await _sync_quota(conn, leave_type, int(match.group(1)), year)

        logger.info("User %s updated settings %s", principal.id, sorted(values))
        await log_audit(
            gateway,
            user_id=principal.id,
            action=AuditAction.UPDATE_SETTINGS,
            target_table=AuditTarget.SYSTEM_SETTINGS,
            new_value=dict(values),
            ip_address=ip_address,
        )
        return len(values)

    @staticmethod
    async def update_auth_settings(
        gateway: Gateway,
        principal: Principal,
        changes: Mapping[str, Any],
        ip_address: Optional[str] = None,
    ) -> None:
        """Write the supplied auth-projection fields (ADMIN only)."""
        if not changes:
            raise BadRequestException(message="No settings were supplied.")

        stored: dict[str, Optional[str]] = {}
        for field, value in changes.items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif isinstance(value, AuthMode):
                value = value.value
            stored[AUTH_FIELD_KEYS[field]] = value

        async with gateway.transaction() as conn:
            for key, value in stored.items():
                await _upsert(conn, key, value, principal.id)

        logger.info("User %s updated auth settings %s", principal.id, sorted(stored))
        await log_audit(
            gateway,
            user_id=principal.id,
            action=AuditAction.UPDATE_SETTINGS,
            target_table=AuditTarget.SYSTEM_SETTINGS,
            new_value=stored,
            ip_address=ip_address,
        )
