from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.db import get_session
from compass_backend.models import User, utc_now
from compass_backend.services.upsert_coordinator import Actor

_bearer = HTTPBearer(auto_error=False)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    # Use a dedicated session for auth so services own their own tx boundaries.
    session: AsyncSession = Depends(get_session, use_cache=False),
) -> User:
    raw_token = creds.credentials.strip() if creds is not None and creds.credentials else ""
    if not raw_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing token")

    user = (await session.exec(select(User).where(User.api_token == raw_token))).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token")
    if user.token_expires_at is not None and _as_utc(user.token_expires_at) <= utc_now():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="token expired")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="user disabled")
    if user.id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="user missing id"
        )

    request.state.auth_user_id = int(user.id)
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin access required")
    return user


def actor_for(user: User) -> Actor:
    return Actor(user_id=int(user.id or 0), is_admin=bool(user.is_admin))
