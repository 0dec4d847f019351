from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Cookie, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.security import decode_access_token
from movienight.db.session import get_db_session

COOKIE_NAME = "access_token"
_MAX_USER_ID_LENGTH = 128


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_db_session():
        yield session


async def get_current_user_id(
    access_token: str | None = Cookie(default=None, alias=COOKIE_NAME),
) -> str:
    if not access_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user_id = decode_access_token(access_token)
    if not user_id or len(user_id) > _MAX_USER_ID_LENGTH:
        raise HTTPException(status_code=401, detail="Invalid token")

    return user_id
