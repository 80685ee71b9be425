"""Future-session visibility policy."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import Protocol

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from models import FutureSession, PostVisibility
from services.account_blocks import is_blocked_between
from services.friendships import resolve_friend_ids


class SupportsVisibility(Protocol):
    user_id: str
    visibility: str | None
    allowed_viewer_ids: Sequence[str] | None


def can_view_post(
    post: SupportsVisibility,
    viewer_id: str,
    friend_ids: Collection[str],
) -> bool:
    """Decide whether ``viewer_id`` may see ``post``.

    Rules, first match wins: the owner always sees their own post; public is
    visible to everyone; private to nobody else; friends-only when the owner
    is in ``friend_ids``; custom when the viewer is on the post's allow-list.
    A missing or unrecognized mode behaves like public.
    """
    if post.user_id == viewer_id:
        return True

    visibility = post.visibility or PostVisibility.PUBLIC.value
    if visibility == PostVisibility.PUBLIC.value:
        return True
    if visibility == PostVisibility.PRIVATE.value:
        return False
    if visibility == PostVisibility.FRIENDS.value:
        return post.user_id in friend_ids
    if visibility == PostVisibility.CUSTOM.value:
        return viewer_id in (post.allowed_viewer_ids or ())
    return True


async def require_post_view_access(
    session: AsyncSession,
    *,
    viewer_id: str,
    post: FutureSession | None,
) -> FutureSession:
    """Return ``post`` when the viewer can see it; otherwise raise 404."""
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Future session not found")
    if post.user_id == viewer_id:
        return post

    if await is_blocked_between(session, viewer_id, post.user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Future session not found")

    friend_ids: set[str] = set()
    if post.visibility == PostVisibility.FRIENDS.value:
        friend_ids = await resolve_friend_ids(session, viewer_id)
    if not can_view_post(post, viewer_id, friend_ids):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Future session not found")
    return post
