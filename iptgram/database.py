from __future__ import annotations

from enum import Enum
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.pool import StaticPool


class DatabaseBackend(str, Enum):
    SQLSERVER = "sqlserver"
    MYSQL = "mysql"
    SQLITE = "sqlite"


BACKEND_DEFAULT_DRIVERS: dict[DatabaseBackend, str] = {
    DatabaseBackend.SQLSERVER: "mssql+pyodbc",
    DatabaseBackend.MYSQL: "mysql+pymysql",
    DatabaseBackend.SQLITE: "sqlite",
}
BACKEND_DIALECTS: dict[DatabaseBackend, frozenset[str]] = {
    DatabaseBackend.SQLSERVER: frozenset({"mssql"}),
    DatabaseBackend.MYSQL: frozenset({"mysql", "mariadb"}),
    DatabaseBackend.SQLITE: frozenset({"sqlite"}),
}
DEFAULT_ODBC_DRIVER = "{ODBC Driver 18 for SQL Server}"

MYSQL_KEYWORDS: dict[str, str] = {
    "server": "host",
    "host": "host",
    "data source": "host",
    "datasource": "host",
    "port": "port",
    "database": "database",
    "initial catalog": "database",
    "user": "username",
    "uid": "username",
    "user id": "username",
    "username": "username",
    "password": "password",
    "pwd": "password",
}
SQLITE_KEYWORDS = frozenset({"data source", "datasource", "filename"})


def is_keyword_connection_string(value: str) -> bool:
    """``Key=Value;Key=Value`` form as written in appsettings connection strings."""
    if "://" in value or "=" not in value:
        return False
    first_key = value.split("=", 1)[0]
    return not any(ch in first_key for ch in "@/:?")


def parse_keyword_connection_string(value: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for part in value.split(";"):
        key, sep, item = part.partition("=")
        if not sep or not key.strip():
            continue
        pairs[key.strip().lower()] = item.strip()
    return pairs


def _sqlserver_url(value: str) -> str:
    pairs = parse_keyword_connection_string(value)
    odbc = value.strip().rstrip(";")
    if "driver" not in pairs:
        odbc = f"DRIVER={DEFAULT_ODBC_DRIVER};{odbc}"
    url = URL.create(BACKEND_DEFAULT_DRIVERS[DatabaseBackend.SQLSERVER], query={"odbc_connect": odbc})
    return url.render_as_string(hide_password=False)


def _mysql_url(value: str) -> str:
    fields: dict[str, Any] = {}
    for key, item in parse_keyword_connection_string(value).items():
        target = MYSQL_KEYWORDS.get(key)
        if target is not None and item:
            fields[target] = item
    if "host" not in fields:
        raise ValueError("MySQL DefaultConnection must name a server.")
    if "port" in fields:
        try:
            fields["port"] = int(fields["port"])
        except ValueError as exc:
            raise ValueError(f"MySQL DefaultConnection has an invalid port '{fields['port']}'.") from exc
    url = URL.create(BACKEND_DEFAULT_DRIVERS[DatabaseBackend.MYSQL], **fields)
    return url.render_as_string(hide_password=False)


def _sqlite_url(value: str) -> str:
    if is_keyword_connection_string(value):
        pairs = parse_keyword_connection_string(value)
        path = next((pairs[key] for key in SQLITE_KEYWORDS if pairs.get(key)), None)
        if path is not None:
            value = path
    return f"{BACKEND_DEFAULT_DRIVERS[DatabaseBackend.SQLITE]}:///{value}"


def build_database_url(backend: DatabaseBackend, connection_string: str) -> str:
    value = (connection_string or "").strip()
    if not value:
        raise ValueError("ConnectionStrings:DefaultConnection must be set.")

    if backend is DatabaseBackend.SQLITE and "://" not in value:
        return _sqlite_url(value)
    if is_keyword_connection_string(value):
        if backend is DatabaseBackend.SQLSERVER:
            return _sqlserver_url(value)
        return _mysql_url(value)
    if "://" not in value:
        return f"{BACKEND_DEFAULT_DRIVERS[backend]}://{value}"

    dialect = value.split("://", 1)[0].split("+", 1)[0].lower()
    if dialect not in BACKEND_DIALECTS[backend]:
        raise ValueError(
            f"DefaultConnection uses dialect '{dialect}' but DATABASE_BACKEND is '{backend.value}'."
        )
    return value


def is_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def init_db(
    backend: DatabaseBackend,
    connection_string: str,
    *,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout_seconds: int = 30,
    pool_recycle_seconds: int = 3600,
) -> Engine:
    """Create the engine for the selected backend. Nothing connects until first use."""
    database_url = build_database_url(backend, connection_string)

    if backend is DatabaseBackend.SQLITE:
        sqlite_kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if is_memory_sqlite(database_url):
            sqlite_kwargs["poolclass"] = StaticPool
        return create_engine(database_url, future=True, **sqlite_kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=max(1, int(pool_size)),
        max_overflow=max(0, int(max_overflow)),
        pool_timeout=max(1, int(pool_timeout_seconds)),
        pool_recycle=max(1, int(pool_recycle_seconds)),
        future=True,
    )
