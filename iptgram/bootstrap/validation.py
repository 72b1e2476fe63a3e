from __future__ import annotations

import logging

from iptgram.config import Config
from iptgram.cookie_auth import CookieSecurePolicy, SameSiteMode
from iptgram.database import build_database_url

AUTH_COOKIE_SECRET_MIN_BYTES = 32


def permissive_posture_findings(config: Config) -> list[str]:
    findings: list[str] = []
    if (config.AUTH_COOKIE_SECURE_POLICY or "").strip().lower() == CookieSecurePolicy.NONE.value:
        findings.append("AUTH_COOKIE_SECURE_POLICY=none sends the auth cookie over plain HTTP")
    if (config.AUTH_COOKIE_SAME_SITE or "").strip().lower() == SameSiteMode.NONE.value:
        findings.append("AUTH_COOKIE_SAME_SITE=none sends the auth cookie on cross-site requests")
    if "*" in config.cors_allow_origins_list and config.CORS_ALLOW_CREDENTIALS:
        findings.append("CORS allows any origin together with credentials")
    return findings


def warn_permissive_posture(config: Config, logger: logging.Logger) -> None:
    for finding in permissive_posture_findings(config):
        logger.warning("permissive_security_posture: %s", finding)


def validate_startup_config(config: Config) -> None:
    try:
        build_database_url(config.DATABASE_BACKEND, config.default_connection)
    except ValueError as exc:
        raise RuntimeError(str(exc)) from exc
    try:
        CookieSecurePolicy((config.AUTH_COOKIE_SECURE_POLICY or "").strip().lower())
    except ValueError:
        raise RuntimeError("AUTH_COOKIE_SECURE_POLICY must be one of: none, always, same_as_request.") from None
    try:
        SameSiteMode((config.AUTH_COOKIE_SAME_SITE or "").strip().lower())
    except ValueError:
        raise RuntimeError("AUTH_COOKIE_SAME_SITE must be one of: none, lax, strict.") from None
    for name in ("AUTH_COOKIE_LOGIN_PATH", "AUTH_COOKIE_LOGOUT_PATH"):
        if not str(getattr(config, name) or "").startswith("/"):
            raise RuntimeError(f"{name} must start with '/'.")
    if not (config.AUTH_COOKIE_NAME or "").strip():
        raise RuntimeError("AUTH_COOKIE_NAME must be set.")
    if config.AUTH_COOKIE_EXPIRE_MINUTES <= 0:
        raise RuntimeError("AUTH_COOKIE_EXPIRE_MINUTES must be greater than 0.")
    if config.PASSWORD_REQUIRED_LENGTH < 0:
        raise RuntimeError("PASSWORD_REQUIRED_LENGTH must be greater than or equal to 0.")
    if config.PASSWORD_REQUIRED_UNIQUE_CHARS < 0:
        raise RuntimeError("PASSWORD_REQUIRED_UNIQUE_CHARS must be greater than or equal to 0.")
    if config.DB_POOL_SIZE <= 0:
        raise RuntimeError("DB_POOL_SIZE must be greater than 0.")
    if config.DB_MAX_OVERFLOW < 0:
        raise RuntimeError("DB_MAX_OVERFLOW must be greater than or equal to 0.")
    if config.DB_POOL_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("DB_POOL_TIMEOUT_SECONDS must be greater than 0.")
    if config.DB_POOL_RECYCLE_SECONDS <= 0:
        raise RuntimeError("DB_POOL_RECYCLE_SECONDS must be greater than 0.")
    if config.strict_security_mode:
        secret = (config.AUTH_COOKIE_SECRET or "").strip()
        if len(secret.encode("utf-8")) < AUTH_COOKIE_SECRET_MIN_BYTES:
            raise RuntimeError(
                f"Strict security mode requires AUTH_COOKIE_SECRET of at least {AUTH_COOKIE_SECRET_MIN_BYTES} bytes."
            )
        findings = permissive_posture_findings(config)
        if findings:
            raise RuntimeError("Strict security mode rejects: " + "; ".join(findings) + ".")
