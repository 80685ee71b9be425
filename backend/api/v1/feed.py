"""Feed-related endpoints."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from core.errors import SERVER_ERROR_MESSAGE
from models import User
from services.feed import FeedEntry, assemble_feed

router = APIRouter(prefix="/feed", tags=["feed"])
logger = logging.getLogger(__name__)


class FeedPostResponse(BaseModel):
    id: str
    user_id: str
    user_name: str
    sport: str
    time: datetime
    location: str
    latitude: float | None = None
    longitude: float | None = None
    notes: str | None = None
    visibility: str
    created_at: datetime | None = None

    @classmethod
    def from_entry(cls, entry: FeedEntry) -> "FeedPostResponse":
        post = entry.post
        return cls(
            id=post.id,
            user_id=post.user_id,
            user_name=entry.owner_name,
            sport=post.sport,
            time=post.time,
            location=post.location,
            latitude=post.latitude,
            longitude=post.longitude,
            notes=post.notes,
            visibility=post.visibility,
            created_at=post.created_at,
        )


class FeedResponse(BaseModel):
    posts: list[FeedPostResponse]


@router.get("/posts", response_model=FeedResponse)
async def friend_feed(
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FeedResponse:
    try:
        entries = await assemble_feed(session, current_user.id)
    except SQLAlchemyError as exc:
        logger.exception("Failed to assemble feed for user %s", current_user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SERVER_ERROR_MESSAGE,
        ) from exc

    return FeedResponse(posts=[FeedPostResponse.from_entry(entry) for entry in entries])
