"""System settings Pydantic schemas."""

from datetime import datetime
from typing import Optional, Union

from pydantic import Field, field_validator

from leave_portal.common.constants import AuthMode
from leave_portal.common.responses import CamelModel

_MAX_VALUE_LENGTH = 1000


def setting_text(value: Union[bool, int, float, str]) -> str:
    """Stored string form of a submitted setting value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format(value, "g")
    return str(value).strip()


class LeaveRulesOut(CamelModel):
    advance_notice_days: int
    sick_cert_threshold: int


# ── General settings (HR / ADMIN) ───────────────────────────────────

class SettingOut(CamelModel):
    value: Optional[str] = None
    description: Optional[str] = None
    updated_at: Optional[datetime] = None


class SettingsUpdate(CamelModel):
    """``{"settings": {"LEAVE_ADVANCE_DAYS": 5, ...}}`` — keys are written verbatim."""

    settings: dict[str, Union[bool, int, float, str]] = Field(..., min_length=1, max_length=100)

    @field_validator("settings")
    @classmethod
    def _as_text(cls, value: dict) -> dict[str, str]:
        converted = {key: setting_text(item) for key, item in value.items()}
        too_long = [key for key, item in converted.items() if len(item) > _MAX_VALUE_LENGTH]
        if too_long:
            raise ValueError(f"Values longer than {_MAX_VALUE_LENGTH} characters: {', '.join(too_long)}")
        return converted


# ── Authentication settings (ADMIN writes) ──────────────────────────

class AuthSettingsOut(CamelModel):
    auth_mode: AuthMode
    ldap_url: str = ""
    ldap_domain: str = ""
    ldap_base_dn: str = ""
    ldap_bind_dn: str = ""
    azure_ad_enabled: bool = False
    azure_ad_tenant_id: str = ""
    azure_ad_client_id: str = ""
    show_microsoft_button: bool
    show_credentials_form: bool


class AuthSettingsUpdate(CamelModel):
    """Partial update; only the fields present in the body are written."""

    auth_mode: Optional[AuthMode] = None
    ldap_url: Optional[str] = Field(None, max_length=255)
    ldap_domain: Optional[str] = Field(None, max_length=255)
    ldap_base_dn: Optional[str] = Field(None, max_length=255)
    ldap_bind_dn: Optional[str] = Field(None, max_length=255)
    azure_ad_enabled: Optional[bool] = None
    azure_ad_tenant_id: Optional[str] = Field(None, max_length=100)
    azure_ad_client_id: Optional[str] = Field(None, max_length=100)
