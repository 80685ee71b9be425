"""Friend request lookups and the derived friend graph."""

from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import FriendRequest, FriendRequestStatus
from services.relationships import collect_counterparty_ids

logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


async def resolve_friend_ids(session: AsyncSession, user_id: str) -> set[str]:
    """Return ids of every user with an accepted request to or from ``user_id``."""
    return await collect_counterparty_ids(
        session,
        subject_id=user_id,
        first_column=FriendRequest.requester_id,
        second_column=FriendRequest.addressee_id,
        condition=_eq(FriendRequest.status, FriendRequestStatus.ACCEPTED.value),
    )


async def get_request_between(
    session: AsyncSession,
    *,
    user_id: str,
    other_user_id: str,
) -> FriendRequest | None:
    """Return the request linking the pair in either direction, if any."""
    result = await session.execute(
        select(FriendRequest)
        .where(
            or_(
                and_(
                    _eq(FriendRequest.requester_id, user_id),
                    _eq(FriendRequest.addressee_id, other_user_id),
                ),
                and_(
                    _eq(FriendRequest.requester_id, other_user_id),
                    _eq(FriendRequest.addressee_id, user_id),
                ),
            )
        )
        .limit(1)
    )
    return result.scalars().first()


async def get_request_by_id(
    session: AsyncSession,
    request_id: str,
) -> FriendRequest | None:
    result = await session.execute(
        select(FriendRequest).where(_eq(FriendRequest.id, request_id)).limit(1)
    )
    return result.scalar_one_or_none()


async def are_friends(
    session: AsyncSession,
    *,
    user_id: str,
    other_user_id: str,
) -> bool:
    request = await get_request_between(
        session,
        user_id=user_id,
        other_user_id=other_user_id,
    )
    return request is not None and request.status == FriendRequestStatus.ACCEPTED.value


async def create_friend_request(
    session: AsyncSession,
    *,
    requester_id: str,
    addressee_id: str,
) -> FriendRequest:
    """Insert a pending request. Callers check for an existing edge first."""
    if requester_id == addressee_id:
        raise ValueError("Cannot send a friend request to yourself")

    request = FriendRequest(
        requester_id=requester_id,
        addressee_id=addressee_id,
        status=FriendRequestStatus.PENDING.value,
    )
    session.add(request)
    await session.commit()
    await session.refresh(request)
    logger.info("Friend request %s sent %s -> %s", request.id, requester_id, addressee_id)
    return request


async def accept_friend_request(
    session: AsyncSession,
    request: FriendRequest,
) -> FriendRequest:
    if request.status != FriendRequestStatus.PENDING.value:
        raise ValueError("Request is not pending")

    request.status = FriendRequestStatus.ACCEPTED.value
    session.add(request)
    await session.commit()
    await session.refresh(request)
    return request


async def decline_friend_request(
    session: AsyncSession,
    request: FriendRequest,
) -> None:
    if request.status != FriendRequestStatus.PENDING.value:
        raise ValueError("Request is not pending")

    await session.delete(request)
    await session.commit()
