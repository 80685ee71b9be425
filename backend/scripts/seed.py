"""Database seed script for local development.

Usage:
    python scripts/seed.py

Creates a handful of riders, a friend graph (accepted and pending), one block
and upcoming sessions covering every visibility mode. Re-running is safe:
existing rows are reused.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.sql import ColumnElement

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from core.security import hash_password  # noqa: E402
from db.session import AsyncSessionMaker  # noqa: E402
from models import (  # noqa: E402
    FriendRequest,
    FriendRequestStatus,
    FutureSession,
    PostVisibility,
    User,
    UserBlock,
)
from services.friendships import get_request_between  # noqa: E402

DEFAULT_PASSWORD = "Sup3rSecret!"


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


@dataclass(frozen=True)
class SeedUser:
    email: str
    name: str
    bio: str


@dataclass(frozen=True)
class SeedSession:
    email: str
    sport: str
    location: str
    hours_from_now: int
    visibility: str = PostVisibility.PUBLIC.value
    allowed_emails: tuple[str, ...] = ()


@dataclass(frozen=True)
class SeedPlan:
    users: list[SeedUser]
    friendships: list[tuple[str, str, str]]
    blocks: list[tuple[str, str]]
    sessions: list[SeedSession] = field(default_factory=list)


BASE_USERS: Sequence[SeedUser] = [
    SeedUser(email="alex@example.com", name="Alex Demo", bio="Kiting whenever it blows."),
    SeedUser(email="sam@example.com", name="Sam Rivera", bio="Wing foil convert."),
    SeedUser(email="jo@example.com", name="Jo Tanaka", bio="Dawn patrol surfer."),
    SeedUser(email="kai@example.com", name="Kai Berg", bio="Windsurf old-timer."),
]


def build_seed_plan() -> SeedPlan:
    return SeedPlan(
        users=list(BASE_USERS),
        friendships=[
            ("alex@example.com", "sam@example.com", FriendRequestStatus.ACCEPTED.value),
            ("jo@example.com", "alex@example.com", FriendRequestStatus.ACCEPTED.value),
            ("kai@example.com", "alex@example.com", FriendRequestStatus.PENDING.value),
        ],
        blocks=[("sam@example.com", "kai@example.com")],
        sessions=[
            SeedSession("sam@example.com", "wingfoiling", "Brouwersdam", 20),
            SeedSession(
                "sam@example.com",
                "kitesurfing",
                "Scheveningen",
                44,
                visibility=PostVisibility.FRIENDS.value,
            ),
            SeedSession(
                "jo@example.com",
                "surfing",
                "Domburg",
                30,
                visibility=PostVisibility.CUSTOM.value,
                allowed_emails=("alex@example.com",),
            ),
            SeedSession(
                "jo@example.com",
                "surfing",
                "Westkapelle",
                50,
                visibility=PostVisibility.PRIVATE.value,
            ),
            SeedSession("kai@example.com", "windsurfing", "Workum", 26),
        ],
    )


async def get_or_create_user(session, payload: SeedUser) -> User:
    result = await session.execute(select(User).where(_eq(User.email, payload.email)))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=payload.email,
        name=payload.name,
        bio=payload.bio,
        password_hash=hash_password(DEFAULT_PASSWORD),
    )
    session.add(user)
    await session.flush()
    return user


async def ensure_friendships(
    session,
    users: dict[str, User],
    friendships: Sequence[tuple[str, str, str]],
) -> None:
    for requester_email, addressee_email, status in friendships:
        requester = users[requester_email]
        addressee = users[addressee_email]
        existing = await get_request_between(
            session,
            user_id=requester.id,
            other_user_id=addressee.id,
        )
        if existing is not None:
            continue
        session.add(
            FriendRequest(
                requester_id=requester.id,
                addressee_id=addressee.id,
                status=status,
            )
        )


async def ensure_blocks(
    session,
    users: dict[str, User],
    blocks: Sequence[tuple[str, str]],
) -> None:
    for blocker_email, blocked_email in blocks:
        blocker = users[blocker_email]
        blocked = users[blocked_email]
        result = await session.execute(
            select(UserBlock).where(
                _eq(UserBlock.blocker_id, blocker.id),
                _eq(UserBlock.blocked_id, blocked.id),
            )
        )
        if result.scalar_one_or_none():
            continue
        session.add(UserBlock(blocker_id=blocker.id, blocked_id=blocked.id))


async def ensure_sessions(
    session,
    users: dict[str, User],
    sessions: Sequence[SeedSession],
) -> None:
    now = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
    for planned in sessions:
        owner = users[planned.email]
        result = await session.execute(
            select(FutureSession).where(
                _eq(FutureSession.user_id, owner.id),
                _eq(FutureSession.location, planned.location),
            )
        )
        if result.scalar_one_or_none():
            continue

        allowed_viewer_ids = None
        if planned.visibility == PostVisibility.CUSTOM.value:
            allowed_viewer_ids = [users[email].id for email in planned.allowed_emails]
        session.add(
            FutureSession(
                user_id=owner.id,
                sport=planned.sport,
                time=now + timedelta(hours=planned.hours_from_now),
                location=planned.location,
                visibility=planned.visibility,
                allowed_viewer_ids=allowed_viewer_ids,
            )
        )


async def seed() -> None:
    plan = build_seed_plan()

    async with AsyncSessionMaker() as session:
        users: dict[str, User] = {}
        for payload in plan.users:
            user = await get_or_create_user(session, payload)
            users[user.email] = user

        await ensure_friendships(session, users, plan.friendships)
        await ensure_blocks(session, users, plan.blocks)
        await ensure_sessions(session, users, plan.sessions)
        await session.commit()

    print("Seed data inserted.")
    print("   Users:", ", ".join(user.email for user in plan.users))
    print("   Default password:", DEFAULT_PASSWORD)
    print("   Friend requests:", len(plan.friendships))
    print("   Blocks:", len(plan.blocks))
    print("   Sessions:", len(plan.sessions))


if __name__ == "__main__":
    asyncio.run(seed())
