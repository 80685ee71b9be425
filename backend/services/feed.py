"""Friend feed assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import FutureSession, User
from services.account_blocks import resolve_blocked_ids
from services.friendships import resolve_friend_ids
from services.post_policy import can_view_post

logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


@dataclass(slots=True)
class FeedEntry:
    post: FutureSession
    owner_name: str


async def assemble_feed(session: AsyncSession, viewer_id: str) -> list[FeedEntry]:
    """Return the viewer's friends' sessions, newest session time first.

    Owners blocked in either direction are removed before the content query.
    The remaining posts are filtered by their visibility mode against the
    viewer's full friend set. Persistence errors propagate; nothing partial is
    returned.
    """
    friend_ids = await resolve_friend_ids(session, viewer_id)
    blocked_ids = await resolve_blocked_ids(session, viewer_id)
    visible_friend_ids = friend_ids - blocked_ids
    if not visible_friend_ids:
        return []

    owner_name_column = cast(ColumnElement[str], User.name)
    owner_id_column = cast(Any, FutureSession.user_id)
    result = await session.execute(
        select(FutureSession, owner_name_column)
        .join(User, _eq(User.id, FutureSession.user_id))
        .where(owner_id_column.in_(sorted(visible_friend_ids)))
        .order_by(_desc(FutureSession.time), _desc(FutureSession.id))
    )
    rows = result.all()

    entries = [
        FeedEntry(post=post, owner_name=owner_name)
        for post, owner_name in rows
        if can_view_post(post, viewer_id, friend_ids)
    ]
    logger.debug(
        "Assembled feed for %s: %d of %d posts visible",
        viewer_id,
        len(entries),
        len(rows),
    )
    return entries
