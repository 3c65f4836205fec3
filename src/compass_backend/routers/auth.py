from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.config import settings
from compass_backend.db import get_session
from compass_backend.deps import get_current_user
from compass_backend.models import User
from compass_backend.schemas.auth import AuthTokenResponse, LoginRequest, Me, RegisterRequest
from compass_backend.security import hash_password, issue_api_token, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)


def _me(user: User) -> Me:
    return Me(id=int(user.id or 0), name=user.name, email=user.email, is_admin=user.is_admin)


async def _issue_token(session: AsyncSession, user: User) -> AuthTokenResponse:
    user.api_token, user.token_expires_at = issue_api_token(settings.token_ttl_seconds)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return AuthTokenResponse(
        token=user.api_token or "",
        expires_at=user.token_expires_at,
        user=_me(user),
    )


@router.post("/register", response_model=AuthTokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_session),
) -> AuthTokenResponse:
    email = payload.email.strip().lower()
    existing = (await session.exec(select(User).where(User.email == email))).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email already registered")

    user = User(name=payload.name.strip(), email=email, password_hash=hash_password(payload.password))
    session.add(user)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email already registered")
    logger.info("user registered email=%s", email)
    return await _issue_token(session, user)


@router.post("/login", response_model=AuthTokenResponse)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> AuthTokenResponse:
    email = payload.email.strip().lower()
    user = (await session.exec(select(User).where(User.email == email))).first()
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="user disabled")
    return await _issue_token(session, user)


@router.get("/me", response_model=Me)
async def me(user: User = Depends(get_current_user)) -> Me:
    return _me(user)
