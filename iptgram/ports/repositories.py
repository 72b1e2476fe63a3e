from __future__ import annotations

from typing import Protocol

from iptgram.ports.dto import UserCreateDTO, UserRecordDTO


class UserRepositoryPort(Protocol):
    def create_user(self, user: UserCreateDTO) -> UserRecordDTO:
        ...

    def find_by_normalized_name(self, normalized_user_name: str) -> UserRecordDTO | None:
        ...

    def get_user(self, user_id: int) -> UserRecordDTO | None:
        ...

    def count_users(self) -> int:
        ...
