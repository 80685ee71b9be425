"""Helpers and business logic for user block relationships."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.errors import is_unique_violation
from models import UserBlock
from services.relationships import collect_counterparty_ids


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _pair_condition(first_user_id: Any, second_user_id: Any) -> ColumnElement[bool]:
    return cast(
        ColumnElement[bool],
        or_(
            and_(
                _eq(UserBlock.blocker_id, first_user_id),
                _eq(UserBlock.blocked_id, second_user_id),
            ),
            and_(
                _eq(UserBlock.blocker_id, second_user_id),
                _eq(UserBlock.blocked_id, first_user_id),
            ),
        ),
    )


def build_not_blocked_either_direction_filter(
    *,
    viewer_id: str,
    candidate_user_id_column: ColumnElement[str],
) -> ColumnElement[bool]:
    """Return SQL predicate ensuring viewer/candidate pair has no block either way."""
    block_exists = exists(
        select(1).where(_pair_condition(viewer_id, candidate_user_id_column))
    )
    return cast(ColumnElement[bool], ~block_exists)


async def resolve_blocked_ids(session: AsyncSession, user_id: str) -> set[str]:
    """Return ids of users ``user_id`` blocked or was blocked by."""
    return await collect_counterparty_ids(
        session,
        subject_id=user_id,
        first_column=UserBlock.blocker_id,
        second_column=UserBlock.blocked_id,
    )


@dataclass(slots=True)
class BlockState:
    is_blocked: bool
    is_blocked_by: bool


async def get_block_state(
    session: AsyncSession,
    *,
    viewer_id: str,
    target_id: str,
) -> BlockState:
    if viewer_id == target_id:
        return BlockState(is_blocked=False, is_blocked_by=False)

    result = await session.execute(
        select(UserBlock).where(_pair_condition(viewer_id, target_id))
    )
    rows = result.scalars().all()
    is_blocked = any(
        row.blocker_id == viewer_id and row.blocked_id == target_id for row in rows
    )
    is_blocked_by = any(
        row.blocker_id == target_id and row.blocked_id == viewer_id for row in rows
    )
    return BlockState(is_blocked=is_blocked, is_blocked_by=is_blocked_by)


async def is_blocked_between(
    session: AsyncSession,
    user_id: str,
    other_user_id: str,
) -> bool:
    """Return True when either user has blocked the other."""
    if user_id == other_user_id:
        return False
    result = await session.execute(
        select(exists().where(_pair_condition(user_id, other_user_id)))
    )
    return bool(result.scalar())


async def apply_user_block(
    session: AsyncSession,
    *,
    blocker_id: str,
    blocked_id: str,
) -> bool:
    """Create the block row.

    Friend requests between the pair are left in place; readers subtract
    blocked ids, so unblocking restores an accepted friendship.
    Returns True when a new block row is created, False when it already existed.
    """
    if blocker_id == blocked_id:
        raise ValueError("Cannot block yourself")

    existing = await session.execute(
        select(UserBlock).where(
            _eq(UserBlock.blocker_id, blocker_id),
            _eq(UserBlock.blocked_id, blocked_id),
        )
    )
    if existing.scalar_one_or_none() is not None:
        return False

    session.add(UserBlock(blocker_id=blocker_id, blocked_id=blocked_id))
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if not is_unique_violation(exc):
            raise
        return False
    return True


async def remove_user_block(
    session: AsyncSession,
    *,
    blocker_id: str,
    blocked_id: str,
) -> bool:
    if blocker_id == blocked_id:
        raise ValueError("Cannot unblock yourself")

    existing = await session.execute(
        select(UserBlock).where(
            _eq(UserBlock.blocker_id, blocker_id),
            _eq(UserBlock.blocked_id, blocked_id),
        )
    )
    block_row = existing.scalar_one_or_none()
    if block_row is None:
        return False

    await session.delete(block_row)
    await session.commit()
    return True
