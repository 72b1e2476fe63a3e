from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Any, TypeAlias

from sqlalchemy.engine import Engine

ConnectionScope: TypeAlias = AbstractContextManager[Any]
ConnectionProvider: TypeAlias = Callable[[], ConnectionScope]


def engine_connection_provider(db_engine: Engine) -> ConnectionProvider:
    """One transaction per scope: committed on clean exit, rolled back when the body raises."""

    def provider() -> ConnectionScope:
        return db_engine.begin()

    return provider


def ensure_connection_provider(
    provider: ConnectionProvider | None,
    *,
    owner: str = "users repository",
) -> ConnectionProvider:
    if provider is None:
        raise RuntimeError(f"{owner} requires a connection provider")
    return provider


def open_connection_scope(provider: ConnectionProvider) -> ConnectionScope:
    return provider()
