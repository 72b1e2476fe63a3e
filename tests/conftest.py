from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from iptgram.config import Config
from iptgram.ports.dto import UserCreateDTO, UserRecordDTO

TEST_COOKIE_SECRET = "test-cookie-secret-with-at-least-32-bytes!"
SEED_USER: Dict[str, Any] = {"UserName": "alice", "Password": "abcdefgh", "Email": "alice@example.com"}


def build_test_config(**overrides: Any) -> Config:
    defaults: dict[str, Any] = {
        "APP_ENV": "test",
        "LOG_LEVEL": "WARNING",
        "LOG_JSON": False,
        "DATABASE_BACKEND": "sqlite",
        "ConnectionStrings": {"DefaultConnection": "sqlite:///:memory:"},
        "IPTGram": {"ApplicationName": "IPTGram", "SeedUsers": [SEED_USER]},
        "AUTH_COOKIE_SECRET": TEST_COOKIE_SECRET,
        "SECURITY_STRICT_MODE": False,
    }
    defaults.update(overrides)
    return Config.model_validate(defaults)


def login(client: Any, user_name: str = "alice", password: str = "abcdefgh") -> Any:
    return client.post("/api/account/login", json={"userName": user_name, "password": password})


def set_cookie_attributes(response: Any) -> List[str]:
    header = response.headers.get("set-cookie") or ""
    return [part.strip().lower() for part in header.split(";")]


class InMemoryUserRepository:
    def __init__(self) -> None:
        self.rows: List[UserRecordDTO] = []

    def create_user(self, user: UserCreateDTO) -> UserRecordDTO:
        record: UserRecordDTO = {"id": len(self.rows) + 1, **user}  # type: ignore[typeddict-item]
        self.rows.append(record)
        return record

    def find_by_normalized_name(self, normalized_user_name: str) -> Optional[UserRecordDTO]:
        return next((row for row in self.rows if row["normalized_user_name"] == normalized_user_name), None)

    def get_user(self, user_id: int) -> Optional[UserRecordDTO]:
        return next((row for row in self.rows if row["id"] == user_id), None)

    def count_users(self) -> int:
        return len(self.rows)


@pytest.fixture
def app_instance():
    from iptgram import create_app

    return create_app(build_test_config())


@pytest.fixture
def client(app_instance):
    with TestClient(app_instance) as tc:
        yield tc


@pytest.fixture
def signed_in_client(client):
    response = login(client)
    assert response.status_code == 200
    return client
