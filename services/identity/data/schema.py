"""Table models for accounts, roles, and profile details."""

from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    func,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(26), primary_key=True),
    Column("user_name", String(256), nullable=False),
    Column("normalized_user_name", String(256), nullable=False, unique=True),
    Column("email", String(256), nullable=False),
    Column("display_name", String(256), nullable=False, server_default=""),
    Column("password_hash", String(512), nullable=False),
    Column(
        "created_at", DateTime(timezone=True), nullable=False, server_default=func.now()
    ),
)

user_roles = Table(
    "user_roles",
    metadata,
    Column(
        "user_id",
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("role", String(128), primary_key=True),
)

abouts = Table(
    "abouts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("full_name", String(256), nullable=False),
    Column("gender", Integer, nullable=False),
    Column("bio", String(2048), nullable=False, server_default=""),
)
