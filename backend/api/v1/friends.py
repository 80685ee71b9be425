"""Friend request and friend list endpoints."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Any, Literal, cast

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from api.deps import get_current_user, get_db
from models import FriendRequest, FriendRequestStatus, User
from services.account_blocks import (
    build_not_blocked_either_direction_filter,
    is_blocked_between,
    resolve_blocked_ids,
)
from services.auth import find_user_by_id
from services.friendships import (
    accept_friend_request,
    create_friend_request,
    decline_friend_request,
    get_request_between,
    get_request_by_id,
    resolve_friend_ids,
)

router = APIRouter(prefix="/friends", tags=["friends"])
MAX_SEARCH_RESULTS = 20
MAX_PENDING_REQUESTS = 50
logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _ne(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column != value)


def _ilike(column: Any, pattern: str) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column.ilike(pattern, escape="\\"))


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str


class UserSearchResponse(BaseModel):
    users: list[UserSummary]


class FriendListResponse(BaseModel):
    friends: list[UserSummary]


class FriendRequestCreate(BaseModel):
    addressee_id: str = Field(min_length=1, max_length=36)


class FriendRequestAction(BaseModel):
    action: Literal["accept", "decline"]


class FriendRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    requester_id: str
    addressee_id: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class FriendRequestEnvelope(BaseModel):
    request: FriendRequestResponse


class FriendRequestListResponse(BaseModel):
    requests: list[FriendRequestResponse]


@router.get("/search", response_model=UserSearchResponse)
async def search_users(
    q: Annotated[str, Query(min_length=1, max_length=80)],
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserSearchResponse:
    query = q.strip()
    if not query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="q is required")

    pattern = f"%{_escape_like(query)}%"
    result = await session.execute(
        select(User)
        .where(
            or_(
                _ilike(User.name, pattern),
                _ilike(User.email, pattern),
            ),
            _ne(User.id, current_user.id),
            build_not_blocked_either_direction_filter(
                viewer_id=current_user.id,
                candidate_user_id_column=cast(ColumnElement[str], User.id),
            ),
        )
        .order_by(User.name, User.id)
        .limit(MAX_SEARCH_RESULTS)
    )
    return UserSearchResponse(
        users=[UserSummary.model_validate(user) for user in result.scalars().all()]
    )


@router.post(
    "/requests",
    response_model=FriendRequestEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def send_friend_request(
    payload: FriendRequestCreate,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FriendRequestEnvelope:
    addressee_id = payload.addressee_id.strip()
    if not addressee_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="addressee_id is required")
    if addressee_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot send a friend request to yourself",
        )

    addressee = await find_user_by_id(session, addressee_id)
    if addressee is None or await is_blocked_between(session, current_user.id, addressee_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    existing = await get_request_between(
        session,
        user_id=current_user.id,
        other_user_id=addressee_id,
    )
    if existing is not None:
        if existing.status == FriendRequestStatus.ACCEPTED.value:
            detail = "You are already friends"
        else:
            detail = "Friend request already pending"
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    request = await create_friend_request(
        session,
        requester_id=current_user.id,
        addressee_id=addressee_id,
    )
    return FriendRequestEnvelope(request=FriendRequestResponse.model_validate(request))


@router.get("/list-requests", response_model=FriendRequestListResponse)
async def list_friend_requests(
    request_type: Annotated[
        Literal["incoming", "outgoing", "all"], Query(alias="type")
    ] = "all",
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FriendRequestListResponse:
    if request_type == "incoming":
        scope = _eq(FriendRequest.addressee_id, current_user.id)
    elif request_type == "outgoing":
        scope = _eq(FriendRequest.requester_id, current_user.id)
    else:
        scope = cast(
            ColumnElement[bool],
            or_(
                _eq(FriendRequest.requester_id, current_user.id),
                _eq(FriendRequest.addressee_id, current_user.id),
            ),
        )

    result = await session.execute(
        select(FriendRequest)
        .where(
            and_(
                _eq(FriendRequest.status, FriendRequestStatus.PENDING.value),
                scope,
            )
        )
        .order_by(cast(Any, FriendRequest.created_at).desc(), FriendRequest.id)
        .limit(MAX_PENDING_REQUESTS)
    )
    return FriendRequestListResponse(
        requests=[
            FriendRequestResponse.model_validate(request)
            for request in result.scalars().all()
        ]
    )


@router.patch("/requests/{request_id}")
async def respond_to_friend_request(
    request_id: str,
    payload: FriendRequestAction,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    request = await get_request_by_id(session, request_id.strip())
    if request is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Friend request not found")
    if request.addressee_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to respond to this request",
        )
    if request.status != FriendRequestStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request is not pending")

    if payload.action == "accept":
        accepted = await accept_friend_request(session, request)
        logger.info("Friend request %s accepted by %s", accepted.id, current_user.id)
        return {
            "request": FriendRequestResponse.model_validate(accepted).model_dump(mode="json"),
        }

    await decline_friend_request(session, request)
    return {"message": "Friend request declined"}


@router.get("", response_model=FriendListResponse)
async def list_friends(
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FriendListResponse:
    friend_ids = await resolve_friend_ids(session, current_user.id)
    friend_ids -= await resolve_blocked_ids(session, current_user.id)
    if not friend_ids:
        return FriendListResponse(friends=[])

    result = await session.execute(
        select(User)
        .where(cast(Any, User.id).in_(sorted(friend_ids)))
        .order_by(User.name, User.id)
    )
    return FriendListResponse(
        friends=[UserSummary.model_validate(user) for user in result.scalars().all()]
    )
