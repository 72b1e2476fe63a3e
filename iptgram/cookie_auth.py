from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlencode

import jwt
from fastapi import Request
from jwt.exceptions import InvalidTokenError
from starlette.responses import RedirectResponse, Response

logger = logging.getLogger("iptgram.auth")

TICKET_ALGORITHM = "HS256"
API_PATH_PREFIX = "/api"


class CookieSecurePolicy(str, Enum):
    NONE = "none"
    ALWAYS = "always"
    SAME_AS_REQUEST = "same_as_request"


class SameSiteMode(str, Enum):
    NONE = "none"
    LAX = "lax"
    STRICT = "strict"


class AuthenticationRequired(Exception):
    """Raised when an action needs a signed-in user and the request has none."""


@dataclass(frozen=True)
class CookieOptions:
    cookie_name: str
    secret: str
    http_only: bool = True
    secure_policy: CookieSecurePolicy = CookieSecurePolicy.NONE
    same_site: SameSiteMode = SameSiteMode.NONE
    login_path: str = "/api/account/login"
    logout_path: str = "/api/account/logout"
    return_url_parameter: str = "ReturnUrl"
    expire_minutes: int = 20160
    sliding_expiration: bool = True
    ephemeral_secret: bool = False

    @classmethod
    def from_config(cls, config: Any) -> "CookieOptions":
        secret = (config.AUTH_COOKIE_SECRET or "").strip()
        ephemeral = not secret
        if ephemeral:
            secret = secrets.token_urlsafe(48)
            logger.warning("auth_cookie_secret_ephemeral")
        return cls(
            cookie_name=config.AUTH_COOKIE_NAME,
            secret=secret,
            http_only=bool(config.AUTH_COOKIE_HTTP_ONLY),
            secure_policy=CookieSecurePolicy((config.AUTH_COOKIE_SECURE_POLICY or "none").strip().lower()),
            same_site=SameSiteMode((config.AUTH_COOKIE_SAME_SITE or "none").strip().lower()),
            login_path=config.AUTH_COOKIE_LOGIN_PATH,
            logout_path=config.AUTH_COOKIE_LOGOUT_PATH,
            expire_minutes=int(config.AUTH_COOKIE_EXPIRE_MINUTES),
            sliding_expiration=bool(config.AUTH_COOKIE_SLIDING_EXPIRATION),
            ephemeral_secret=ephemeral,
        )

    @property
    def expire_seconds(self) -> int:
        return max(1, int(self.expire_minutes)) * 60


@dataclass(frozen=True)
class CurrentUser:
    id: int
    user_name: str
    security_stamp: str
    issued_at: int
    expires_at: int


def starts_with_segments(path: str, prefix: str) -> bool:
    """Case-insensitive prefix test that only matches on a segment boundary."""
    normalized_prefix = prefix.rstrip("/").lower()
    normalized_path = (path or "").lower()
    if not normalized_prefix:
        return True
    if not normalized_path.startswith(normalized_prefix):
        return False
    rest = normalized_path[len(normalized_prefix) :]
    return rest == "" or rest.startswith("/")


class CookieAuthentication:
    def __init__(
        self,
        options: CookieOptions,
        *,
        clock: Callable[[], float] = time.time,
        security_stamp_lookup: Callable[[int], str | None] | None = None,
    ) -> None:
        self.options = options
        self._clock = clock
        self._security_stamp_lookup = security_stamp_lookup

    def issue_ticket(self, user: Any) -> str:
        now = int(self._clock())
        if isinstance(user, CurrentUser):
            user_id, user_name, stamp = user.id, user.user_name, user.security_stamp
        else:
            user_id, user_name, stamp = user["id"], user["user_name"], user.get("security_stamp") or ""
        claims = {
            "sub": str(user_id),
            "name": user_name,
            "stamp": stamp,
            "iat": now,
            "exp": now + self.options.expire_seconds,
        }
        return jwt.encode(claims, self.options.secret, algorithm=TICKET_ALGORITHM)

    def read_ticket(self, token: str | None) -> CurrentUser | None:
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                key=self.options.secret,
                algorithms=[TICKET_ALGORITHM],
                options={"require": ["sub", "exp", "iat"], "verify_exp": False, "verify_iat": False},
            )
        except InvalidTokenError:
            logger.debug("auth_ticket_rejected")
            return None

        try:
            expires_at = int(claims["exp"])
            issued_at = int(claims["iat"])
            user_id = int(claims["sub"])
        except (TypeError, ValueError):
            return None
        if expires_at <= int(self._clock()):
            return None
        return CurrentUser(
            id=user_id,
            user_name=str(claims.get("name") or ""),
            security_stamp=str(claims.get("stamp") or ""),
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def authenticate(self, request: Request) -> CurrentUser | None:
        """Read the ticket cookie; a ticket whose stamp no longer matches the stored user is ignored."""
        user = self.read_ticket(request.cookies.get(self.options.cookie_name))
        if user is None or self._security_stamp_lookup is None:
            return user
        if self._security_stamp_lookup(user.id) != user.security_stamp:
            logger.info("auth_ticket_stamp_mismatch", extra={"user_id": user.id})
            return None
        return user

    def should_renew(self, user: CurrentUser) -> bool:
        if not self.options.sliding_expiration:
            return False
        lifetime = user.expires_at - user.issued_at
        elapsed = int(self._clock()) - user.issued_at
        return elapsed > lifetime / 2

    def _secure_for(self, request: Request) -> bool:
        if self.options.secure_policy is CookieSecurePolicy.ALWAYS:
            return True
        if self.options.secure_policy is CookieSecurePolicy.SAME_AS_REQUEST:
            return request.url.scheme == "https"
        return False

    def append_cookie(self, request: Request, response: Response, ticket: str) -> None:
        response.set_cookie(
            self.options.cookie_name,
            ticket,
            max_age=self.options.expire_seconds,
            path="/",
            secure=self._secure_for(request),
            httponly=self.options.http_only,
            samesite=self.options.same_site.value,
        )
        request.state.auth_cookie_written = True

    def delete_cookie(self, request: Request, response: Response) -> None:
        response.delete_cookie(
            self.options.cookie_name,
            path="/",
            secure=self._secure_for(request),
            httponly=self.options.http_only,
            samesite=self.options.same_site.value,
        )
        request.state.auth_cookie_written = True
        request.state.user = None

    def redirect_uri(self, request: Request) -> str:
        return_url = request.url.path
        if request.url.query:
            return_url = f"{return_url}?{request.url.query}"
        query = urlencode({self.options.return_url_parameter: return_url})
        return f"{self.options.login_path}?{query}"

    def challenge(self, request: Request) -> Response:
        if starts_with_segments(request.url.path, API_PATH_PREFIX):
            return Response(status_code=401)
        return RedirectResponse(self.redirect_uri(request), status_code=302)
