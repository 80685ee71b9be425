"""FastAPI dependencies shared by the v1 routers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import NoReturn

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core import ACCESS_TOKEN_TYPE, decode_token
from db.session import get_session
from models import User
from services.auth import ACCESS_COOKIE, find_user_by_id


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def _raise_unauthorized(detail: str) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_access_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization")
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
        return None
    return request.cookies.get(ACCESS_COOKIE)


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the authenticated user from a bearer token or the access cookie."""
    token = _extract_access_token(request)
    if not token:
        _raise_unauthorized("Missing or invalid Authorization header")

    try:
        payload = decode_token(token)
    except ValueError:
        _raise_unauthorized("Invalid or expired token")

    subject = payload.get("sub")
    if payload.get("type") != ACCESS_TOKEN_TYPE or not isinstance(subject, str):
        _raise_unauthorized("Invalid or expired token")

    user = await find_user_by_id(session, subject)
    if user is None:
        _raise_unauthorized("Invalid or expired token")
    return user
