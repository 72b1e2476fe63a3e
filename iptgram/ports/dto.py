from __future__ import annotations

from datetime import datetime
from typing import TypedDict


class UserCreateDTO(TypedDict):
    user_name: str
    normalized_user_name: str
    email: str | None
    normalized_email: str | None
    password_hash: str
    security_stamp: str


class UserRecordDTO(TypedDict, total=False):
    id: int
    user_name: str
    normalized_user_name: str
    email: str | None
    normalized_email: str | None
    password_hash: str
    security_stamp: str
    created_at: datetime
