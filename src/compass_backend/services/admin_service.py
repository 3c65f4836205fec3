from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.errors import Conflict, NotFound, PersistenceFailed, ValidationFailed
from compass_backend.models import Blog, Course, Exam, Note, User

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


async def _count(session: AsyncSession, model: type[SQLModel], *where: Any) -> int:
    stmt = select(func.count()).select_from(model)
    for clause in where:
        stmt = stmt.where(clause)
    return int((await session.exec(stmt)).one())


async def dashboard_stats(*, session: AsyncSession) -> dict[str, Any]:
    """Content counts plus the newest student accounts and courses."""
    downloads = (await session.exec(select(func.coalesce(func.sum(Note.download_count), 0)))).one()
    recent_users = (
        await session.exec(
            select(User)
            .where(col(User.is_admin).is_(False))
            .order_by(col(User.created_at).desc())
            .limit(RECENT_LIMIT)
        )
    ).all()
    recent_courses = (
        await session.exec(
            select(Course).order_by(col(Course.created_at).desc()).limit(RECENT_LIMIT)
        )
    ).all()
    return {
        "total_users": await _count(session, User, col(User.is_admin).is_(False)),
        "total_courses": await _count(session, Course),
        "total_notes": await _count(session, Note),
        "total_blogs": await _count(session, Blog),
        "total_exams": await _count(session, Exam),
        "total_downloads": int(downloads or 0),
        "recent_users": list(recent_users),
        "recent_courses": list(recent_courses),
    }


async def delete_user(*, session: AsyncSession, user_id: int, acting_admin_id: int) -> None:
    if user_id == acting_admin_id:
        raise ValidationFailed("user_id", "cannot delete your own account")

    user = await session.get(User, user_id)
    if user is None:
        raise NotFound("user not found")

    owned = (
        await _count(session, Note, col(Note.uploaded_by) == user_id)
        + await _count(session, Blog, col(Blog.uploaded_by) == user_id)
        + await _count(session, Course, col(Course.created_by) == user_id)
    )
    if owned:
        raise Conflict("user still owns notes, blogs or courses", details={"owned": owned})

    try:
        await session.delete(user)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.warning("user delete failed user_id=%s", user_id, exc_info=True)
        raise PersistenceFailed("failed to delete user") from e
    logger.info("user deleted user_id=%s by admin_id=%s", user_id, acting_admin_id)


async def toggle_user_active(*, session: AsyncSession, user_id: int, acting_admin_id: int) -> User:
    if user_id == acting_admin_id:
        raise ValidationFailed("user_id", "cannot deactivate your own account")
    user = await session.get(User, user_id)
    if user is None:
        raise NotFound("user not found")
    user.is_active = not user.is_active
    try:
        session.add(user)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.warning("user status toggle failed user_id=%s", user_id, exc_info=True)
        raise PersistenceFailed("failed to update user") from e
    await session.refresh(user)
    logger.info("user active=%s user_id=%s by admin_id=%s", user.is_active, user_id, acting_admin_id)
    return user
