"""Authentication and own-account endpoints."""

from __future__ import annotations

import logging
from typing import Any, Literal, cast

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from api.deps import get_current_user, get_db
from core import create_access_token, hash_password, needs_rehash
from db.errors import is_unique_violation
from models import FriendRequest, FutureSession, FutureSessionComment, User, UserBlock
from services.auth import (
    clear_access_cookie,
    find_user_by_email,
    normalize_email,
    resolve_login_user,
    set_access_cookie,
)

router = APIRouter(prefix="/auth", tags=["auth"])
MAX_PROFILE_BIO_LENGTH = 500
logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=80)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: EmailStr
    bio: str | None = None
    avatar_url: str | None = None
    profile_visibility: str = "public"


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=80)
    bio: str | None = Field(default=None, max_length=MAX_PROFILE_BIO_LENGTH)
    avatar_url: str | None = Field(default=None, max_length=512)
    profile_visibility: Literal["public", "friends", "private"] | None = None


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db),
) -> UserResponse:
    normalized_email = normalize_email(str(payload.email))
    if await find_user_by_email(session, normalized_email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already exists",
        )

    user = User(
        name=payload.name.strip(),
        email=normalized_email,
        password_hash=hash_password(payload.password),
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already exists",
            ) from exc
        raise
    await session.refresh(user)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_db),
) -> TokenResponse:
    user = await resolve_login_user(
        session,
        email=payload.email,
        password=payload.password,
    )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(payload.password)
        await session.commit()

    access_token = create_access_token(user.id)
    set_access_cookie(response, access_token)
    return TokenResponse(access_token=access_token)


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(response: Response) -> dict[str, str]:
    clear_access_cookie(response)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    payload: ProfileUpdateRequest,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    fields_set = payload.model_fields_set
    if "name" in fields_set:
        if payload.name is None or not payload.name.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Name cannot be empty",
            )
        current_user.name = payload.name.strip()
    if "bio" in fields_set:
        bio = (payload.bio or "").strip()
        current_user.bio = bio or None
    if "avatar_url" in fields_set:
        avatar_url = (payload.avatar_url or "").strip()
        current_user.avatar_url = avatar_url or None
    if "profile_visibility" in fields_set and payload.profile_visibility is not None:
        current_user.profile_visibility = payload.profile_visibility

    session.add(current_user)
    await session.commit()
    await session.refresh(current_user)
    return UserResponse.model_validate(current_user)


@router.delete("/me", status_code=status.HTTP_200_OK)
async def delete_me(
    response: Response,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    user_id = current_user.id
    own_post_ids = select(FutureSession.id).where(_eq(FutureSession.user_id, user_id))

    # Explicit deletes keep backends without enforced foreign keys consistent.
    await session.execute(
        delete(FutureSessionComment).where(
            or_(
                _eq(FutureSessionComment.user_id, user_id),
                cast(Any, FutureSessionComment.post_id).in_(own_post_ids),
            )
        )
    )
    await session.execute(delete(FutureSession).where(_eq(FutureSession.user_id, user_id)))
    await session.execute(
        delete(FriendRequest).where(
            or_(
                _eq(FriendRequest.requester_id, user_id),
                _eq(FriendRequest.addressee_id, user_id),
            )
        )
    )
    await session.execute(
        delete(UserBlock).where(
            or_(
                _eq(UserBlock.blocker_id, user_id),
                _eq(UserBlock.blocked_id, user_id),
            )
        )
    )
    await session.delete(current_user)
    await session.commit()
    logger.info("Deleted account %s", user_id)

    clear_access_cookie(response)
    return {"message": "Account deleted"}
