from iptgram.ports.dto import UserCreateDTO, UserRecordDTO
from iptgram.ports.repositories import UserRepositoryPort

__all__ = [
    "UserCreateDTO",
    "UserRecordDTO",
    "UserRepositoryPort",
]
