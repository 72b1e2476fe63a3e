from fastapi import FastAPI

from iptgram.cookie_auth import CookieOptions
from iptgram.routes.account import build_account_router


def register_routes(app: FastAPI, *, cookie_options: CookieOptions) -> None:
    app.include_router(build_account_router(cookie_options))
