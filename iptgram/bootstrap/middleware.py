from __future__ import annotations

import logging
import stat
import time
from collections.abc import Awaitable, Callable
from uuid import uuid4

import anyio.to_thread
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Receive, Scope, Send

from iptgram.config import Config
from iptgram.cookie_auth import CookieAuthentication

logger = logging.getLogger("iptgram.api")

STATIC_METHODS = frozenset({"GET", "HEAD"})
CORS_ALLOW_ANY = ["*"]


class StaticFilesMiddleware:
    """Serves an existing file under ``directory`` and forwards everything else."""

    def __init__(self, app: ASGIApp, *, directory: str) -> None:
        self.app = app
        self.directory = directory
        self.static = StaticFiles(directory=directory, check_dir=False)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("method") not in STATIC_METHODS:
            await self.app(scope, receive, send)
            return

        path = self.static.get_path(scope)
        _full_path, stat_result = await anyio.to_thread.run_sync(self.static.lookup_path, path)
        if stat_result is None or not stat.S_ISREG(stat_result.st_mode):
            await self.app(scope, receive, send)
            return
        await self.static(scope, receive, send)


def register_static_files(api: FastAPI, config: Config) -> None:
    api.add_middleware(StaticFilesMiddleware, directory=config.STATIC_ROOT)


def register_authentication(api: FastAPI, authentication: CookieAuthentication) -> None:
    @api.middleware("http")
    async def cookie_authentication(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        user = await run_in_threadpool(authentication.authenticate, request)
        request.state.user = user
        response = await call_next(request)

        if user is not None and not getattr(request.state, "auth_cookie_written", False):
            if authentication.should_renew(user):
                authentication.append_cookie(request, response, authentication.issue_ticket(user))
        return response


def register_cors(api: FastAPI, config: Config) -> None:
    api.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins_list,
        allow_methods=CORS_ALLOW_ANY,
        allow_headers=CORS_ALLOW_ANY,
        allow_credentials=bool(config.CORS_ALLOW_CREDENTIALS),
    )


def register_request_context(api: FastAPI) -> None:
    @api.middleware("http")
    async def request_context(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        response = await call_next(request)
        response.headers.setdefault("X-Request-Id", request_id)
        logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return response


def register_core_middleware(api: FastAPI, config: Config, *, authentication: CookieAuthentication) -> None:
    # Starlette wraps the most recently added middleware outermost, so the
    # request sees: request context, CORS, authentication, static files, routing.
    register_static_files(api, config)
    register_authentication(api, authentication)
    register_cors(api, config)
    register_request_context(api)
