"""Signed-in account operations."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.db import get_session
from compass_backend.deps import get_current_user
from compass_backend.models import User
from compass_backend.schemas.users import (
    ChangePasswordRequest,
    DeleteAccountRequest,
    SavedItem,
    SavedItems,
)
from compass_backend.services import users_service
from compass_backend.services.users_service import SavedList

router = APIRouter(prefix="/users", tags=["users"])


def _saved(items: list[dict[str, str]], *, active: bool | None = None) -> SavedItems:
    return SavedItems(active=active, items=[SavedItem.model_validate(i) for i in items])


@router.put("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    await users_service.change_password(
        session=session,
        user_id=int(user.id or 0),
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return {"ok": True}


@router.delete("/account")
async def delete_account(
    payload: DeleteAccountRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    await users_service.deactivate_account(
        session=session, user_id=int(user.id or 0), password=payload.password
    )
    return {"ok": True}


async def _list(which: SavedList, user: User, session: AsyncSession) -> SavedItems:
    items = await users_service.get_saved_items(
        session=session, user_id=int(user.id or 0), which=which
    )
    return _saved(items)


async def _add(which: SavedList, payload: SavedItem, user: User, session: AsyncSession) -> SavedItems:
    items = await users_service.add_saved_item(
        session=session,
        user_id=int(user.id or 0),
        which=which,
        item_type=payload.item_type,
        item_id=payload.item_id,
    )
    return _saved(items, active=True)


async def _remove(which: SavedList, item_id: str, user: User, session: AsyncSession) -> SavedItems:
    items = await users_service.remove_saved_item(
        session=session, user_id=int(user.id or 0), which=which, item_id=item_id
    )
    return _saved(items, active=False)


@router.get("/bookmarks", response_model=SavedItems)
async def list_bookmarks(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SavedItems:
    return await _list("bookmarks", user, session)


@router.post("/bookmarks", response_model=SavedItems)
async def add_bookmark(
    payload: SavedItem,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SavedItems:
    return await _add("bookmarks", payload, user, session)


@router.delete("/bookmarks/{item_id}", response_model=SavedItems)
async def remove_bookmark(
    item_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SavedItems:
    return await _remove("bookmarks", item_id, user, session)


@router.get("/favorites", response_model=SavedItems)
async def list_favorites(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SavedItems:
    return await _list("favorites", user, session)


@router.post("/favorites", response_model=SavedItems)
async def add_favorite(
    payload: SavedItem,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SavedItems:
    return await _add("favorites", payload, user, session)


@router.delete("/favorites/{item_id}", response_model=SavedItems)
async def remove_favorite(
    item_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SavedItems:
    return await _remove("favorites", item_id, user, session)
