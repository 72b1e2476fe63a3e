from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

from iptgram.database import DatabaseBackend


class ConnectionStringsSection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    DefaultConnection: str = "sqlite:///iptgram.db"


class SeedUser(BaseModel):
    model_config = ConfigDict(extra="forbid")

    UserName: str
    Password: str
    Email: Optional[str] = None


class AppOptions(BaseModel):
    """Application options bound from the ``IPTGram`` configuration section."""

    model_config = ConfigDict(extra="ignore")

    ApplicationName: str = "IPTGram"
    SeedUsers: List[SeedUser] = []


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    ConnectionStrings: ConnectionStringsSection = ConnectionStringsSection()
    IPTGram: AppOptions = AppOptions()

    DATABASE_BACKEND: DatabaseBackend = DatabaseBackend.SQLITE
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT_SECONDS: int = 30
    DB_POOL_RECYCLE_SECONDS: int = 3600

    DEBUG: bool = False
    APP_ENV: str = "development"
    SECURITY_STRICT_MODE: bool = False
    PORT: int = 8000
    STATIC_ROOT: str = "wwwroot"

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    PASSWORD_REQUIRED_LENGTH: int = 6
    PASSWORD_REQUIRED_UNIQUE_CHARS: int = 1
    PASSWORD_REQUIRE_DIGIT: bool = False
    PASSWORD_REQUIRE_LOWERCASE: bool = False
    PASSWORD_REQUIRE_UPPERCASE: bool = False
    PASSWORD_REQUIRE_NON_ALPHANUMERIC: bool = False

    AUTH_COOKIE_NAME: str = ".IPTGram.Identity"
    AUTH_COOKIE_SECRET: str | None = None
    AUTH_COOKIE_HTTP_ONLY: bool = True
    AUTH_COOKIE_SECURE_POLICY: str = "none"
    AUTH_COOKIE_SAME_SITE: str = "none"
    AUTH_COOKIE_LOGIN_PATH: str = "/api/account/login"
    AUTH_COOKIE_LOGOUT_PATH: str = "/api/account/logout"
    AUTH_COOKIE_EXPIRE_MINUTES: int = 20160
    AUTH_COOKIE_SLIDING_EXPIRATION: bool = True

    CORS_ALLOW_ORIGINS: str = "*"
    CORS_ALLOW_CREDENTIALS: bool = True

    @staticmethod
    def _parse_csv(value: str) -> List[str]:
        return [item.strip() for item in value.split(",") if item.strip()]

    @property
    def default_connection(self) -> str:
        return (self.ConnectionStrings.DefaultConnection or "").strip()

    @property
    def app_options(self) -> AppOptions:
        return self.IPTGram

    @property
    def cors_allow_origins_list(self) -> List[str]:
        values = self._parse_csv(self.CORS_ALLOW_ORIGINS)
        return values or ["*"]

    @property
    def app_env(self) -> str:
        value = (self.APP_ENV or "").strip().lower()
        return value or "development"

    @property
    def is_development(self) -> bool:
        return self.app_env in {"dev", "development"}

    @property
    def strict_security_mode(self) -> bool:
        if bool(self.SECURITY_STRICT_MODE):
            return True
        return self.app_env in {"prod", "production"}
