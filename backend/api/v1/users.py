"""User profile and block endpoints."""

from __future__ import annotations

import logging
from typing import Any, NoReturn, cast

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from api.deps import get_current_user, get_db
from models import User, UserBlock
from services.account_blocks import (
    apply_user_block,
    is_blocked_between,
    remove_user_block,
)
from services.auth import find_user_by_id

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


def _raise_user_not_found() -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="User not found",
    )


class UserProfilePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    bio: str | None = None
    avatar_url: str | None = None


class BlockedUsersResponse(BaseModel):
    users: list[UserProfilePublic]


class BlockMutationResponse(BaseModel):
    message: str
    blocked: bool


async def _require_block_target(session: AsyncSession, *, user_id: str, current_user: User) -> User:
    target_user_id = user_id.strip()
    if not target_user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User id is required")
    if target_user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot block yourself")

    target_user = await find_user_by_id(session, target_user_id)
    if target_user is None:
        _raise_user_not_found()
    return target_user


@router.get("/blocked", response_model=BlockedUsersResponse)
async def list_blocked_users(
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BlockedUsersResponse:
    result = await session.execute(
        select(User)
        .join(UserBlock, _eq(UserBlock.blocked_id, User.id))
        .where(_eq(UserBlock.blocker_id, current_user.id))
        .order_by(_desc(UserBlock.created_at), User.id)
    )
    blocked_users = result.scalars().all()
    return BlockedUsersResponse(
        users=[UserProfilePublic.model_validate(user) for user in blocked_users]
    )


@router.post("/{user_id}/block", response_model=BlockMutationResponse)
async def block_user(
    user_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BlockMutationResponse:
    target_user = await _require_block_target(session, user_id=user_id, current_user=current_user)
    created = await apply_user_block(
        session,
        blocker_id=current_user.id,
        blocked_id=target_user.id,
    )
    if created:
        logger.info("User %s blocked %s", current_user.id, target_user.id)
        return BlockMutationResponse(message="User blocked", blocked=True)
    return BlockMutationResponse(message="User already blocked", blocked=True)


@router.delete("/{user_id}/block", response_model=BlockMutationResponse)
async def unblock_user(
    user_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BlockMutationResponse:
    target_user = await _require_block_target(session, user_id=user_id, current_user=current_user)
    removed = await remove_user_block(
        session,
        blocker_id=current_user.id,
        blocked_id=target_user.id,
    )
    if removed:
        return BlockMutationResponse(message="User unblocked", blocked=False)
    return BlockMutationResponse(message="User was not blocked", blocked=False)


@router.get("/{user_id}", response_model=UserProfilePublic)
async def get_user_profile(
    user_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserProfilePublic:
    target_user = await find_user_by_id(session, user_id.strip())
    if target_user is None:
        _raise_user_not_found()
    if await is_blocked_between(session, current_user.id, target_user.id):
        _raise_user_not_found()
    return UserProfilePublic.model_validate(target_user)
