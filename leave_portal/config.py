"""Application configuration via environment variables."""

import json
import ssl
from typing import Any, List, Optional

from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database: DATABASE_URL wins over the individual parts when set
    DATABASE_URL: Optional[str] = None
    DB_SERVER: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "hr_leave"
    DB_USER: str = "hr_app"
    DB_PASSWORD: str = ""
    DB_ENCRYPT: bool = False
    DB_TRUST_SERVER_CERTIFICATE: bool = False
    DB_POOL_SIZE: int = 10
    DB_POOL_TIMEOUT: int = 30

    # Directory login (consumed by the LDAP provider)
    LDAP_URL: str = ""
    LDAP_BIND_DN: str = ""
    LDAP_BIND_PASSWORD: str = ""
    LDAP_DOMAIN: str = ""
    LDAP_BASE_DN: str = ""

    # Azure AD
    AZURE_AD_TENANT_ID: str = ""
    AZURE_AD_CLIENT_ID: str = ""

    # Fallback when the AUTH_MODE row is missing from system_settings
    AUTH_MODE: str = "LOCAL"

    # Sessions: JWT_SECRET MUST be set via environment / .env (no default)
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_MINUTES: int = 15

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: str = "5/5minutes"

    # App
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "info"
    CORS_ORIGINS: str = '["http://localhost:3000"]'

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS JSON string into a list."""
        try:
            return json.loads(self.CORS_ORIGINS)
        except (json.JSONDecodeError, TypeError):
            return ["http://localhost:3000"]

    @property
    def database_url(self) -> str:
        """Async SQLAlchemy URL built from DB_* unless DATABASE_URL is given."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        url = URL.create(
            "postgresql+asyncpg",
            username=self.DB_USER,
            password=self.DB_PASSWORD or None,
            host=self.DB_SERVER,
            port=self.DB_PORT,
            database=self.DB_NAME,
        )
        return url.render_as_string(hide_password=False)

    @property
    def database_connect_args(self) -> dict[str, Any]:
        """Driver connect args carrying the TLS policy (asyncpg only)."""
        if not self.DB_ENCRYPT or not self.database_url.startswith("postgresql+asyncpg"):
            return {}
        context = ssl.create_default_context()
        if self.DB_TRUST_SERVER_CERTIFICATE:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return {"ssl": context}

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
