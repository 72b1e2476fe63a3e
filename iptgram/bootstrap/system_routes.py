from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from iptgram.bootstrap.contracts import DBHealthCheck
from iptgram.schemas import ErrorResponse, HealthResponse, ReadinessCheck, ReadinessResponse


def register_system_routes(api: FastAPI, *, db_health_check: DBHealthCheck) -> None:
    @api.get("/health/live", tags=["system"], response_model=HealthResponse, responses={500: {"model": ErrorResponse}})
    async def health_live() -> HealthResponse:
        return HealthResponse(status="ok")

    @api.get("/health", tags=["system"], response_model=HealthResponse, responses={500: {"model": ErrorResponse}})
    async def health() -> HealthResponse:
        return await health_live()

    @api.get(
        "/health/ready",
        tags=["system"],
        response_model=ReadinessResponse,
        responses={500: {"model": ErrorResponse}, 503: {"model": ReadinessResponse}},
    )
    def health_ready() -> ReadinessResponse | JSONResponse:
        db_ok, db_detail = db_health_check()
        payload = ReadinessResponse(
            status="ok" if db_ok else "degraded",
            checks={"database": ReadinessCheck(ok=db_ok, detail=db_detail)},
        )
        if db_ok:
            return payload
        return JSONResponse(status_code=503, content=payload.model_dump())
