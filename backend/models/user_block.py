"""Block edges between users."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, func
from sqlmodel import Field, SQLModel


def _user_fk_column(**kwargs) -> Column:
    return Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        **kwargs,
    )


class UserBlock(SQLModel, table=True):
    """``blocker_id`` blocked ``blocked_id``.

    Only the blocker can lift the block, but while the row exists neither user
    sees the other: profiles, searches, friend lists, sessions and the feed all
    treat the pair as strangers.
    """

    __tablename__ = "user_blocks"
    __table_args__ = (
        CheckConstraint("blocker_id <> blocked_id", name="ck_user_blocks_no_self_block"),
        # Reverse lookups for "who blocked me".
        Index("ix_user_blocks_blocked_blocker", "blocked_id", "blocker_id"),
        Index("ix_user_blocks_blocker_created_at", "blocker_id", "created_at"),
    )

    blocker_id: str = Field(sa_column=_user_fk_column())
    blocked_id: str = Field(sa_column=_user_fk_column())
    created_at: datetime = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), server_default=func.now(), nullable=False),
    )
