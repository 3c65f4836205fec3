"""Account self-service: password change, deactivation and saved items.

Bookmarks and favorites are lists of ``{"item_type", "item_id"}`` on the user
row; adding an item that is already saved is a no-op.
"""

from __future__ import annotations

import logging
from typing import Literal

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.errors import NotFound, PersistenceFailed, ValidationFailed
from compass_backend.models import Blog, Course, Note, User
from compass_backend.security import hash_password, verify_password

logger = logging.getLogger(__name__)

SavedList = Literal["bookmarks", "favorites"]
ItemType = Literal["course", "note", "blog"]

_ITEM_MODELS: dict[str, type[SQLModel]] = {"course": Course, "note": Note, "blog": Blog}


async def _load(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFound("user not found")
    return user


async def _commit(session: AsyncSession, user: User, *, action: str) -> User:
    try:
        session.add(user)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.warning("user %s failed user_id=%s", action, user.id, exc_info=True)
        raise PersistenceFailed(f"failed to {action}") from e
    await session.refresh(user)
    return user


def _check_password(user: User, password: str, *, field: str) -> None:
    if not verify_password(password, user.password_hash):
        raise ValidationFailed(field, "incorrect password")


async def change_password(
    *, session: AsyncSession, user_id: int, current_password: str, new_password: str
) -> None:
    user = await _load(session, user_id)
    _check_password(user, current_password, field="current_password")
    try:
        user.password_hash = hash_password(new_password)
    except ValueError as e:
        raise ValidationFailed("new_password", str(e)) from None
    await _commit(session, user, action="change password")
    logger.info("password changed user_id=%s", user_id)


async def deactivate_account(*, session: AsyncSession, user_id: int, password: str) -> None:
    """Accounts are deactivated, never removed; the bearer token is revoked."""
    user = await _load(session, user_id)
    _check_password(user, password, field="password")
    user.is_active = False
    user.api_token = None
    user.token_expires_at = None
    await _commit(session, user, action="deactivate account")
    logger.info("account deactivated user_id=%s", user_id)


async def add_saved_item(
    *,
    session: AsyncSession,
    user_id: int,
    which: SavedList,
    item_type: ItemType,
    item_id: str,
) -> list[dict[str, str]]:
    if await session.get(_ITEM_MODELS[item_type], item_id) is None:
        raise NotFound(f"{item_type} not found")

    user = await _load(session, user_id)
    items: list[dict[str, str]] = list(getattr(user, which) or [])
    if not any(i.get("item_id") == item_id for i in items):
        items.append({"item_type": item_type, "item_id": item_id})
        setattr(user, which, items)
        await _commit(session, user, action=f"update {which}")
    return items


async def remove_saved_item(
    *, session: AsyncSession, user_id: int, which: SavedList, item_id: str
) -> list[dict[str, str]]:
    user = await _load(session, user_id)
    current: list[dict[str, str]] = list(getattr(user, which) or [])
    items = [i for i in current if i.get("item_id") != item_id]
    if len(items) != len(current):
        setattr(user, which, items)
        await _commit(session, user, action=f"update {which}")
    return items


async def get_saved_items(
    *, session: AsyncSession, user_id: int, which: SavedList
) -> list[dict[str, str]]:
    user = await _load(session, user_id)
    return list(getattr(user, which) or [])
