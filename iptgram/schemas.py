from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StrictRequestModel(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class CamelResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    code: str = Field(examples=["NOT_FOUND"])
    message: str = Field(examples=["Not Found"])
    request_id: Optional[str] = Field(default=None, examples=["c752262e-cf42-4075-917b-95ffcb5ceeeb"])
    details: Any = None


class HealthResponse(BaseModel):
    status: str = Field(examples=["ok"])


class ReadinessCheck(BaseModel):
    ok: bool
    detail: Optional[str] = None


class ReadinessResponse(BaseModel):
    status: str = Field(examples=["ok", "degraded"])
    checks: dict[str, ReadinessCheck]


class LoginPayload(StrictRequestModel):
    user_name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"example": {"userName": "alice", "password": "abcdefgh"}},
    )


class RegisterPayload(StrictRequestModel):
    user_name: str = Field(..., min_length=1)
    password: str
    email: Optional[str] = None


class AccountUserResponse(CamelResponseModel):
    id: int
    user_name: str
    email: Optional[str] = None


class LoginStatusResponse(CamelResponseModel):
    authenticated: bool
    user_name: Optional[str] = None
    return_url: Optional[str] = None


class LogoutResponse(CamelResponseModel):
    status: str = Field(examples=["signed_out"])
