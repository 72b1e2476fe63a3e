from __future__ import annotations

from sqlalchemy import BigInteger, Column, DateTime, Integer, MetaData, String, Table, func

metadata = MetaData()

USERS = Table(
    "users",
    metadata,
    # BigInteger only autoincrements as INTEGER on sqlite.
    Column("id", BigInteger().with_variant(Integer(), "sqlite"), primary_key=True, autoincrement=True),
    Column("user_name", String(256), nullable=False),
    Column("normalized_user_name", String(256), nullable=False, unique=True),
    Column("email", String(256), nullable=True),
    Column("normalized_email", String(256), nullable=True, index=True),
    Column("password_hash", String(255), nullable=False),
    Column("security_stamp", String(64), nullable=False),
    Column("created_at", DateTime(), server_default=func.current_timestamp(), nullable=False),
)
