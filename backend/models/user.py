"""User domain model."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Text, func, text
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """Registered application user."""

    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    name: str = Field(
        sa_column=Column(String(80), nullable=False)
    )
    # Always stored lower-cased; lookups compare against the normalized value.
    email: str = Field(
        sa_column=Column(String(255), unique=True, nullable=False, index=True)
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False)
    )
    bio: str | None = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )
    avatar_url: str | None = Field(
        default=None, sa_column=Column(String(512), nullable=True)
    )
    profile_visibility: str = Field(
        default="public",
        sa_column=Column(
            String(16),
            nullable=False,
            server_default=text("'public'"),
        ),
    )
    created_at: datetime = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )
    )
    updated_at: datetime = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )
    )
