"""Tests for the friend feed."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1 import feed as feed_api
from core import create_access_token
from models import FriendRequest, FriendRequestStatus, FutureSession, PostVisibility, User, UserBlock
from services.feed import assemble_feed


async def create_user(session: AsyncSession, prefix: str) -> User:
    suffix = uuid4().hex[:6]
    user = User(
        name=f"{prefix}_{suffix}",
        email=f"{prefix}_{suffix}@example.com",
        password_hash="not-a-real-hash",
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


async def befriend(session: AsyncSession, requester: User, addressee: User) -> None:
    session.add(
        FriendRequest(
            requester_id=requester.id,
            addressee_id=addressee.id,
            status=FriendRequestStatus.ACCEPTED.value,
        )
    )
    await session.commit()


async def create_post(
    session: AsyncSession,
    owner: User,
    visibility: PostVisibility,
    *,
    hours_ahead: int = 1,
    allowed_viewer_ids: list[str] | None = None,
    notes: str | None = None,
) -> FutureSession:
    post = FutureSession(
        user_id=owner.id,
        sport="kitesurfing",
        time=datetime.now(timezone.utc) + timedelta(hours=hours_ahead),
        location="Tarifa",
        visibility=visibility.value,
        allowed_viewer_ids=allowed_viewer_ids,
        notes=notes,
    )
    session.add(post)
    await session.commit()
    await session.refresh(post)
    return post


@pytest.mark.asyncio
async def test_feed_excludes_blocked_friend(
    async_client: AsyncClient,
    db_session: AsyncSession,
):
    viewer = await create_user(db_session, "viewer")
    kept_friend = await create_user(db_session, "kept")
    blocked_friend = await create_user(db_session, "blocked")
    await befriend(db_session, viewer, kept_friend)
    await befriend(db_session, blocked_friend, viewer)

    public_post = await create_post(db_session, kept_friend, PostVisibility.PUBLIC, hours_ahead=1)
    friends_post = await create_post(db_session, kept_friend, PostVisibility.FRIENDS, hours_ahead=2)
    await create_post(db_session, blocked_friend, PostVisibility.PUBLIC)
    await create_post(db_session, blocked_friend, PostVisibility.FRIENDS)

    db_session.add(UserBlock(blocker_id=viewer.id, blocked_id=blocked_friend.id))
    await db_session.commit()

    response = await async_client.get("/api/v1/feed/posts", headers=auth_headers(viewer))

    assert response.status_code == 200
    posts = response.json()["posts"]
    assert {post["id"] for post in posts} == {public_post.id, friends_post.id}
    assert all(post["user_id"] == kept_friend.id for post in posts)
    assert all(post["user_name"] == kept_friend.name for post in posts)


@pytest.mark.asyncio
async def test_feed_excludes_friend_who_blocked_viewer(db_session: AsyncSession):
    viewer = await create_user(db_session, "viewer")
    friend = await create_user(db_session, "friend")
    await befriend(db_session, viewer, friend)
    await create_post(db_session, friend, PostVisibility.PUBLIC)

    db_session.add(UserBlock(blocker_id=friend.id, blocked_id=viewer.id))
    await db_session.commit()

    assert await assemble_feed(db_session, viewer.id) == []


@pytest.mark.asyncio
async def test_feed_is_ordered_by_session_time_descending(
    async_client: AsyncClient,
    db_session: AsyncSession,
):
    viewer = await create_user(db_session, "viewer")
    first_friend = await create_user(db_session, "first")
    second_friend = await create_user(db_session, "second")
    await befriend(db_session, viewer, first_friend)
    await befriend(db_session, viewer, second_friend)

    soon = await create_post(db_session, first_friend, PostVisibility.PUBLIC, hours_ahead=1)
    later = await create_post(db_session, second_friend, PostVisibility.FRIENDS, hours_ahead=5)
    middle = await create_post(db_session, first_friend, PostVisibility.PUBLIC, hours_ahead=3)

    response = await async_client.get("/api/v1/feed/posts", headers=auth_headers(viewer))

    assert response.status_code == 200
    assert [post["id"] for post in response.json()["posts"]] == [later.id, middle.id, soon.id]


@pytest.mark.asyncio
async def test_feed_without_friends_skips_content_query(
    db_session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
):
    viewer = await create_user(db_session, "viewer")
    stranger = await create_user(db_session, "stranger")
    await create_post(db_session, stranger, PostVisibility.PUBLIC)

    executed: list[str] = []
    original_execute = db_session.execute

    async def spy_execute(statement: Any, *args: Any, **kwargs: Any):
        executed.append(str(statement))
        return await original_execute(statement, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", spy_execute)

    assert await assemble_feed(db_session, viewer.id) == []
    assert executed
    assert not any("future_sessions" in statement for statement in executed)


@pytest.mark.asyncio
async def test_feed_with_only_blocked_friends_skips_content_query(
    db_session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
):
    viewer = await create_user(db_session, "viewer")
    friend = await create_user(db_session, "friend")
    await befriend(db_session, viewer, friend)
    await create_post(db_session, friend, PostVisibility.PUBLIC)
    db_session.add(UserBlock(blocker_id=viewer.id, blocked_id=friend.id))
    await db_session.commit()

    executed: list[str] = []
    original_execute = db_session.execute

    async def spy_execute(statement: Any, *args: Any, **kwargs: Any):
        executed.append(str(statement))
        return await original_execute(statement, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", spy_execute)

    assert await assemble_feed(db_session, viewer.id) == []
    assert not any("future_sessions" in statement for statement in executed)


@pytest.mark.asyncio
async def test_feed_mixed_visibility_shows_only_public_post(db_session: AsyncSession):
    viewer = await create_user(db_session, "viewer")
    friend = await create_user(db_session, "friend")
    third = await create_user(db_session, "third")
    await befriend(db_session, viewer, friend)

    public_post = await create_post(db_session, friend, PostVisibility.PUBLIC, hours_ahead=1)
    await create_post(db_session, friend, PostVisibility.PRIVATE, hours_ahead=2)
    await create_post(
        db_session,
        friend,
        PostVisibility.CUSTOM,
        hours_ahead=3,
        allowed_viewer_ids=[third.id],
    )

    entries = await assemble_feed(db_session, viewer.id)

    assert [entry.post.id for entry in entries] == [public_post.id]
    assert entries[0].owner_name == friend.name


@pytest.mark.asyncio
async def test_feed_includes_custom_post_naming_viewer(db_session: AsyncSession):
    viewer = await create_user(db_session, "viewer")
    friend = await create_user(db_session, "friend")
    await befriend(db_session, friend, viewer)

    custom_post = await create_post(
        db_session,
        friend,
        PostVisibility.CUSTOM,
        allowed_viewer_ids=[viewer.id],
    )

    entries = await assemble_feed(db_session, viewer.id)

    assert [entry.post.id for entry in entries] == [custom_post.id]


@pytest.mark.asyncio
async def test_feed_ignores_pending_requests_and_own_posts(db_session: AsyncSession):
    viewer = await create_user(db_session, "viewer")
    pending = await create_user(db_session, "pending")
    db_session.add(
        FriendRequest(
            requester_id=viewer.id,
            addressee_id=pending.id,
            status=FriendRequestStatus.PENDING.value,
        )
    )
    await db_session.commit()
    await create_post(db_session, pending, PostVisibility.PUBLIC)
    await create_post(db_session, viewer, PostVisibility.PUBLIC)

    assert await assemble_feed(db_session, viewer.id) == []


@pytest.mark.asyncio
async def test_feed_is_idempotent(db_session: AsyncSession):
    viewer = await create_user(db_session, "viewer")
    friend = await create_user(db_session, "friend")
    await befriend(db_session, viewer, friend)
    await create_post(db_session, friend, PostVisibility.PUBLIC, hours_ahead=1)
    await create_post(db_session, friend, PostVisibility.FRIENDS, hours_ahead=2)

    first = await assemble_feed(db_session, viewer.id)
    second = await assemble_feed(db_session, viewer.id)

    assert [entry.post.id for entry in first] == [entry.post.id for entry in second]
    assert len(first) == 2


@pytest.mark.asyncio
async def test_feed_requires_authentication(async_client: AsyncClient):
    response = await async_client.get("/api/v1/feed/posts")

    assert response.status_code == 401
    assert response.json() == {"message": "Missing or invalid Authorization header"}


@pytest.mark.asyncio
async def test_feed_rejects_invalid_token(async_client: AsyncClient):
    response = await async_client.get(
        "/api/v1/feed/posts",
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == 401
    assert response.json() == {"message": "Invalid or expired token"}


@pytest.mark.asyncio
async def test_feed_maps_persistence_failure_to_server_error(
    async_client: AsyncClient,
    db_session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
):
    viewer = await create_user(db_session, "viewer")

    async def failing_assemble_feed(session: AsyncSession, viewer_id: str):
        raise OperationalError("SELECT 1", {}, Exception("database unavailable"))

    monkeypatch.setattr(feed_api, "assemble_feed", failing_assemble_feed)

    response = await async_client.get("/api/v1/feed/posts", headers=auth_headers(viewer))

    assert response.status_code == 500
    assert response.json() == {"message": "Server error"}


def _fail_on_session_query(original_execute, executed: list[str]):
    async def execute(*args: Any, **kwargs: Any):
        # Works both bound to an instance and patched onto the class.
        statement = args[-1] if "statement" not in kwargs else kwargs["statement"]
        rendered = str(statement)
        executed.append(rendered)
        if "future_sessions" in rendered:
            raise OperationalError(rendered, {}, Exception("database unavailable"))
        return await original_execute(*args, **kwargs)

    return execute


@pytest.mark.asyncio
async def test_feed_content_query_failure_aborts_assembly(
    db_session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
):
    viewer = await create_user(db_session, "viewer")
    friend = await create_user(db_session, "friend")
    await befriend(db_session, viewer, friend)
    await create_post(db_session, friend, PostVisibility.PUBLIC)

    executed: list[str] = []
    monkeypatch.setattr(
        db_session,
        "execute",
        _fail_on_session_query(db_session.execute, executed),
    )

    entries = None
    with pytest.raises(OperationalError):
        entries = await assemble_feed(db_session, viewer.id)

    assert entries is None
    # Friend and block lookups ran before the failing content query.
    assert len(executed) == 3
    assert "friend_requests" in executed[0]
    assert "user_blocks" in executed[1]


@pytest.mark.asyncio
async def test_feed_endpoint_returns_server_error_when_content_query_fails(
    async_client: AsyncClient,
    db_session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
):
    viewer = await create_user(db_session, "viewer")
    friend = await create_user(db_session, "friend")
    await befriend(db_session, viewer, friend)
    await create_post(db_session, friend, PostVisibility.PUBLIC)

    executed: list[str] = []
    monkeypatch.setattr(
        AsyncSession,
        "execute",
        _fail_on_session_query(AsyncSession.execute, executed),
    )

    response = await async_client.get("/api/v1/feed/posts", headers=auth_headers(viewer))

    assert response.status_code == 500
    assert response.json() == {"message": "Server error"}
    assert any("future_sessions" in statement for statement in executed)
