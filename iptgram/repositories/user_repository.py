from __future__ import annotations

from typing import cast

from sqlalchemy import func, insert, select

from iptgram.ports.dto import UserCreateDTO, UserRecordDTO
from iptgram.repositories.session_provider import ConnectionProvider, ensure_connection_provider, open_connection_scope
from iptgram.tables import USERS


def _to_record(row: object | None) -> UserRecordDTO | None:
    if row is None:
        return None
    return cast(UserRecordDTO, dict(cast(dict, row)))


class UserRepository:
    def __init__(self, *, connection_provider: ConnectionProvider | None) -> None:
        self._connection_provider = ensure_connection_provider(connection_provider)

    def create_user(self, user: UserCreateDTO) -> UserRecordDTO:
        with open_connection_scope(self._connection_provider) as conn:
            result = conn.execute(insert(USERS).values(**user))
            user_id = int(result.inserted_primary_key[0])
            row = conn.execute(select(USERS).where(USERS.c.id == user_id)).mappings().first()
        record = _to_record(row)
        if record is None:
            raise RuntimeError(f"user {user_id} vanished after insert")
        return record

    def find_by_normalized_name(self, normalized_user_name: str) -> UserRecordDTO | None:
        stmt = select(USERS).where(USERS.c.normalized_user_name == normalized_user_name)
        with open_connection_scope(self._connection_provider) as conn:
            row = conn.execute(stmt).mappings().first()
        return _to_record(row)

    def get_user(self, user_id: int) -> UserRecordDTO | None:
        with open_connection_scope(self._connection_provider) as conn:
            row = conn.execute(select(USERS).where(USERS.c.id == user_id)).mappings().first()
        return _to_record(row)

    def count_users(self) -> int:
        with open_connection_scope(self._connection_provider) as conn:
            total = conn.execute(select(func.count()).select_from(USERS)).scalar()
        return int(total or 0)
