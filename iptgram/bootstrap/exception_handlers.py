from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from iptgram.bootstrap.contracts import ChallengeHandler
from iptgram.cookie_auth import AuthenticationRequired
from iptgram.errors import error_response, normalize_http_exception, validation_error_response


def register_exception_handlers(
    api: FastAPI,
    *,
    logger: logging.Logger,
    challenge: ChallengeHandler,
    development: bool = False,
) -> None:
    @api.exception_handler(AuthenticationRequired)
    async def authentication_challenge_handler(request: Request, _exc: AuthenticationRequired) -> Response:
        return challenge(request)

    @api.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return normalize_http_exception(request, exc)

    @api.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return validation_error_response(request, list(exc.errors()))

    if development:

        @api.exception_handler(SQLAlchemyError)
        async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
            logger.exception("database_error", extra={"request_id": getattr(request.state, "request_id", None)})
            return error_response(
                request,
                status_code=500,
                code="DATABASE_ERROR",
                message="A database operation failed.",
                details={"error": type(exc).__name__, "message": str(exc)},
            )

    @api.exception_handler(Exception)
    async def server_error_handler(request: Request, _exc: Exception) -> JSONResponse:
        logger.exception("unhandled_exception", extra={"request_id": getattr(request.state, "request_id", None)})
        return error_response(
            request,
            status_code=500,
            code="INTERNAL_ERROR",
            message="Internal Server Error",
        )
