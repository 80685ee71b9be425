"""SQLModel models package."""

from .friend_request import FriendRequest, FriendRequestStatus
from .future_session import (
    SPORT_OPTIONS,
    FutureSession,
    FutureSessionComment,
    PostVisibility,
)
from .user import User
from .user_block import UserBlock

__all__ = [
    "User",
    "FriendRequest",
    "FriendRequestStatus",
    "UserBlock",
    "FutureSession",
    "FutureSessionComment",
    "PostVisibility",
    "SPORT_OPTIONS",
]
