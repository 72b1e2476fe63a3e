from __future__ import annotations

from typing import cast

from fastapi import Request

from iptgram.container import ServiceContainer
from iptgram.cookie_auth import AuthenticationRequired, CurrentUser
from iptgram.identity import SignInManager, UserManager


def get_services(request: Request) -> ServiceContainer:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("app.state.services is not configured")
    return cast(ServiceContainer, services)


def get_user_manager(request: Request) -> UserManager:
    return get_services(request).user_manager()


def get_sign_in_manager(request: Request) -> SignInManager:
    return get_services(request).sign_in_manager()


def get_current_user(request: Request) -> CurrentUser | None:
    return getattr(request.state, "user", None)


def require_current_user(request: Request) -> CurrentUser:
    user = get_current_user(request)
    if user is None:
        raise AuthenticationRequired()
    return user
