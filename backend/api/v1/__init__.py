"""Version 1 API routers."""

from fastapi import APIRouter

from . import auth, feed, friends, future_sessions, users

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(friends.router)
api_router.include_router(future_sessions.router)
api_router.include_router(feed.router)

__all__ = ["api_router"]
