from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.db import get_session
from compass_backend.deps import get_current_user
from compass_backend.models import Course, User
from compass_backend.schemas.courses import Course as CourseSchema
from compass_backend.schemas.notes import ToggleResult
from compass_backend.services import courses_service

router = APIRouter(prefix="/courses", tags=["courses"])


def course_to_schema(row: Course) -> CourseSchema:
    return CourseSchema(
        id=row.id,
        title=row.title,
        description=row.description,
        instructor=row.instructor,
        category=row.category,
        level=row.level,
        price=row.price,
        original_price=row.original_price,
        duration=row.duration,
        thumbnail=row.thumbnail,
        tags=list(row.tags or []),
        rating=row.rating,
        total_ratings=row.total_ratings,
        enrolled_students=row.enrolled_students,
        likes_count=len(row.likes or []),
        is_published=row.is_published,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.get("/{course_id}", response_model=CourseSchema)
async def get_course(
    course_id: str,
    session: AsyncSession = Depends(get_session),
) -> CourseSchema:
    row = await courses_service.get_course(session=session, course_id=course_id)
    return course_to_schema(row)


@router.post("/{course_id}/like", response_model=ToggleResult)
async def like_course(
    course_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ToggleResult:
    row, liked = await courses_service.toggle_like(
        session=session, course_id=course_id, user_id=int(user.id or 0)
    )
    return ToggleResult(active=liked, count=len(row.likes or []))
