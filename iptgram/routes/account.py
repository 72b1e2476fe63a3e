from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from iptgram.cookie_auth import CookieOptions, CurrentUser
from iptgram.errors import identity_error, invalid_credentials, not_found
from iptgram.identity import IdentityOperationError, SignInManager, UserManager
from iptgram.providers import get_current_user, get_sign_in_manager, get_user_manager, require_current_user
from iptgram.routes.common import ERROR_RESPONSES
from iptgram.schemas import (
    AccountUserResponse,
    LoginPayload,
    LoginStatusResponse,
    LogoutResponse,
    RegisterPayload,
)

REGISTER_PATH = "/api/account/register"
ME_PATH = "/api/account/me"


def build_account_router(cookie_options: CookieOptions) -> APIRouter:
    router = APIRouter(tags=["account"])

    @router.get(
        cookie_options.login_path,
        summary="Sign-in status",
        response_model=LoginStatusResponse,
        responses=ERROR_RESPONSES,
    )
    def login_status(
        request: Request,
        user: CurrentUser | None = Depends(get_current_user),
    ) -> LoginStatusResponse:
        return LoginStatusResponse(
            authenticated=user is not None,
            user_name=user.user_name if user else None,
            return_url=request.query_params.get(cookie_options.return_url_parameter),
        )

    @router.post(
        cookie_options.login_path,
        summary="Sign in with user name and password",
        response_model=AccountUserResponse,
        responses=ERROR_RESPONSES,
    )
    def login(
        request: Request,
        response: Response,
        payload: LoginPayload,
        sign_in_manager: SignInManager = Depends(get_sign_in_manager),
    ) -> AccountUserResponse:
        result = sign_in_manager.password_sign_in(payload.user_name, payload.password)
        if not result.succeeded or result.user is None:
            raise invalid_credentials()
        sign_in_manager.sign_in(request, response, result)
        return AccountUserResponse(
            id=int(result.user["id"]),
            user_name=result.user["user_name"],
            email=result.user.get("email"),
        )

    @router.api_route(
        cookie_options.logout_path,
        methods=["GET", "POST"],
        summary="Sign out",
        response_model=LogoutResponse,
        responses=ERROR_RESPONSES,
    )
    def logout(
        request: Request,
        response: Response,
        sign_in_manager: SignInManager = Depends(get_sign_in_manager),
    ) -> LogoutResponse:
        sign_in_manager.sign_out(request, response)
        return LogoutResponse(status="signed_out")

    @router.post(
        REGISTER_PATH,
        summary="Create a user",
        response_model=AccountUserResponse,
        status_code=201,
        responses=ERROR_RESPONSES,
    )
    def register(
        payload: RegisterPayload,
        user_manager: UserManager = Depends(get_user_manager),
    ) -> AccountUserResponse:
        try:
            user = user_manager.create(payload.user_name, payload.password, email=payload.email)
        except IdentityOperationError as exc:
            raise identity_error(str(exc), exc.errors) from exc
        return AccountUserResponse(id=int(user["id"]), user_name=user["user_name"], email=user.get("email"))

    @router.get(
        ME_PATH,
        summary="Current user",
        response_model=AccountUserResponse,
        responses=ERROR_RESPONSES,
    )
    def me(
        user: CurrentUser = Depends(require_current_user),
        user_manager: UserManager = Depends(get_user_manager),
    ) -> AccountUserResponse:
        record = user_manager.find_by_id(user.id)
        if record is None:
            raise not_found()
        return AccountUserResponse(id=int(record["id"]), user_name=record["user_name"], email=record.get("email"))

    return router
