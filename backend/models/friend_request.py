"""Friend request relationship model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, func
from sqlmodel import Field, SQLModel


class FriendRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class FriendRequest(SQLModel, table=True):
    """Directed requester -> addressee edge.

    Only one edge may exist per user pair regardless of direction; that is
    checked before insert rather than by a constraint. Accepted edges count
    as friendship for both parties.
    """

    __tablename__ = "friend_requests"
    __table_args__ = (
        CheckConstraint(
            "requester_id <> addressee_id",
            name="ck_friend_requests_no_self_request",
        ),
        Index("ix_friend_requests_requester_status", "requester_id", "status"),
        Index("ix_friend_requests_addressee_status", "addressee_id", "status"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    requester_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    addressee_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    status: str = Field(
        default=FriendRequestStatus.PENDING.value,
        sa_column=Column(String(16), nullable=False),
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
