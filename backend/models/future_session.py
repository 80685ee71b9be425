"""Scheduled future session posts and their comments."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Index, String, Text, func, text
from sqlmodel import Field, SQLModel


class PostVisibility(str, Enum):
    PUBLIC = "public"
    FRIENDS = "friends"
    PRIVATE = "private"
    CUSTOM = "custom"


SPORT_OPTIONS = ("kitesurfing", "wingfoiling", "windsurfing", "surfing")


class FutureSession(SQLModel, table=True):
    """A session a user plans to ride, shared with a visibility audience."""

    __tablename__ = "future_sessions"
    __table_args__ = (
        Index("ix_future_sessions_user_time", "user_id", "time"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    user_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    sport: str = Field(sa_column=Column(String(32), nullable=False))
    time: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    location: str = Field(sa_column=Column(String(255), nullable=False))
    latitude: float | None = Field(default=None, sa_column=Column(Float, nullable=True))
    longitude: float | None = Field(default=None, sa_column=Column(Float, nullable=True))
    notes: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    visibility: str = Field(
        default=PostVisibility.PUBLIC.value,
        sa_column=Column(
            String(16),
            nullable=False,
            server_default=text("'public'"),
        ),
    )
    # Only consulted when visibility is "custom".
    allowed_viewer_ids: list[str] | None = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )
    created_at: datetime = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            nullable=False,
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


class FutureSessionComment(SQLModel, table=True):
    __tablename__ = "future_session_comments"
    __table_args__ = (
        Index("ix_future_session_comments_post_created_at", "post_id", "created_at"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    post_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("future_sessions.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    user_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    body: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            nullable=False,
        )
    )
