"""Future session posts and comments."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated, Any, cast

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from api.deps import get_current_user, get_db
from models import SPORT_OPTIONS, FutureSession, FutureSessionComment, PostVisibility, User
from services.account_blocks import build_not_blocked_either_direction_filter, is_blocked_between
from services.auth import find_user_by_id
from services.friendships import resolve_friend_ids
from services.post_policy import can_view_post, require_post_view_access

router = APIRouter(prefix="/future-sessions", tags=["future-sessions"])
MAX_COMMENT_LENGTH = 500
MAX_NOTES_LENGTH = 1000
logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _asc(column: Any) -> Any:
    return cast(Any, column).asc()


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class FutureSessionCreate(BaseModel):
    sport: str
    time: datetime
    location: str = Field(max_length=255)
    latitude: float | None = Field(
        default=None,
        ge=-90,
        le=90,
        validation_alias=AliasChoices("latitude", "lat"),
    )
    longitude: float | None = Field(
        default=None,
        ge=-180,
        le=180,
        validation_alias=AliasChoices("longitude", "lon"),
    )
    notes: str | None = Field(default=None, max_length=MAX_NOTES_LENGTH)
    visibility: PostVisibility = PostVisibility.PUBLIC
    allowed_viewer_ids: list[str] | None = None

    @field_validator("sport")
    @classmethod
    def _normalize_sport(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in SPORT_OPTIONS:
            raise ValueError(f"Invalid sport value. Use one of: {', '.join(SPORT_OPTIONS)}")
        return normalized

    @field_validator("location")
    @classmethod
    def _require_location(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Location is required")
        return normalized

    @field_validator("notes")
    @classmethod
    def _normalize_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class FutureSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    sport: str
    time: datetime
    location: str
    latitude: float | None = None
    longitude: float | None = None
    notes: str | None = None
    visibility: str
    allowed_viewer_ids: list[str] | None = None
    created_at: datetime | None = None

    @classmethod
    def for_viewer(cls, post: FutureSession, viewer_id: str) -> "FutureSessionResponse":
        response = cls.model_validate(post)
        # The audience list is the owner's business only.
        if post.user_id != viewer_id:
            response.allowed_viewer_ids = None
        return response


class FutureSessionEnvelope(BaseModel):
    session: FutureSessionResponse


class FutureSessionListResponse(BaseModel):
    posts: list[FutureSessionResponse]


class CommentCreateRequest(BaseModel):
    body: str = Field(min_length=1, max_length=MAX_COMMENT_LENGTH)


class CommentResponse(BaseModel):
    id: str
    post_id: str
    user_id: str
    user_name: str | None = None
    body: str
    created_at: datetime | None = None


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]


def _normalize_allowed_viewer_ids(
    viewer_ids: list[str] | None,
    *,
    owner_id: str,
) -> list[str]:
    normalized: list[str] = []
    for viewer_id in viewer_ids or []:
        candidate = viewer_id.strip()
        if candidate and candidate != owner_id and candidate not in normalized:
            normalized.append(candidate)
    return normalized


async def _get_future_session(session: AsyncSession, post_id: str) -> FutureSession | None:
    result = await session.execute(
        select(FutureSession).where(_eq(FutureSession.id, post_id.strip())).limit(1)
    )
    return result.scalar_one_or_none()


@router.post(
    "/post-session",
    response_model=FutureSessionEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def create_future_session(
    payload: FutureSessionCreate,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FutureSessionEnvelope:
    allowed_viewer_ids: list[str] | None = None
    if payload.visibility == PostVisibility.CUSTOM:
        allowed_viewer_ids = _normalize_allowed_viewer_ids(
            payload.allowed_viewer_ids,
            owner_id=current_user.id,
        )

    post = FutureSession(
        user_id=current_user.id,
        sport=payload.sport,
        time=_to_utc(payload.time),
        location=payload.location,
        latitude=payload.latitude,
        longitude=payload.longitude,
        notes=payload.notes,
        visibility=payload.visibility.value,
        allowed_viewer_ids=allowed_viewer_ids,
    )
    session.add(post)
    await session.commit()
    await session.refresh(post)
    return FutureSessionEnvelope(session=FutureSessionResponse.for_viewer(post, current_user.id))


@router.get("/list-posts", response_model=FutureSessionListResponse)
async def list_future_sessions(
    user_id: Annotated[str | None, Query(max_length=36)] = None,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FutureSessionListResponse:
    viewer_id = current_user.id
    target_user_id = (user_id or "").strip() or viewer_id

    if target_user_id != viewer_id:
        target_user = await find_user_by_id(session, target_user_id)
        if target_user is None or await is_blocked_between(session, viewer_id, target_user_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    result = await session.execute(
        select(FutureSession)
        .where(_eq(FutureSession.user_id, target_user_id))
        .order_by(_asc(FutureSession.time), _asc(FutureSession.id))
    )
    posts = list(result.scalars().all())

    if target_user_id != viewer_id:
        friend_ids = await resolve_friend_ids(session, viewer_id)
        posts = [post for post in posts if can_view_post(post, viewer_id, friend_ids)]

    return FutureSessionListResponse(
        posts=[FutureSessionResponse.for_viewer(post, viewer_id) for post in posts]
    )


@router.delete("/{post_id}")
async def delete_future_session(
    post_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    post = await _get_future_session(session, post_id)
    if post is None or post.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Future session not found")

    await session.execute(
        delete(FutureSessionComment).where(_eq(FutureSessionComment.post_id, post.id))
    )
    await session.delete(post)
    await session.commit()
    return {"message": "Future session deleted"}


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: str,
    payload: CommentCreateRequest,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CommentResponse:
    body = payload.body.strip()
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Comment body required")

    post = await require_post_view_access(
        session,
        viewer_id=current_user.id,
        post=await _get_future_session(session, post_id),
    )
    comment = FutureSessionComment(post_id=post.id, user_id=current_user.id, body=body)
    session.add(comment)
    await session.commit()
    await session.refresh(comment)
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        user_name=current_user.name,
        body=comment.body,
        created_at=comment.created_at,
    )


@router.get("/{post_id}/comments", response_model=CommentListResponse)
async def list_comments(
    post_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CommentListResponse:
    post = await require_post_view_access(
        session,
        viewer_id=current_user.id,
        post=await _get_future_session(session, post_id),
    )
    author_name_column = cast(ColumnElement[str], User.name)
    result = await session.execute(
        select(FutureSessionComment, author_name_column)
        .join(User, _eq(User.id, FutureSessionComment.user_id))
        .where(
            _eq(FutureSessionComment.post_id, post.id),
            build_not_blocked_either_direction_filter(
                viewer_id=current_user.id,
                candidate_user_id_column=cast(ColumnElement[str], FutureSessionComment.user_id),
            ),
        )
        .order_by(_asc(FutureSessionComment.created_at), _asc(FutureSessionComment.id))
    )
    return CommentListResponse(
        comments=[
            CommentResponse(
                id=comment.id,
                post_id=comment.post_id,
                user_id=comment.user_id,
                user_name=user_name,
                body=comment.body,
                created_at=comment.created_at,
            )
            for comment, user_name in result.all()
        ]
    )
