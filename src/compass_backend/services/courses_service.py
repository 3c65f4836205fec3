from __future__ import annotations

from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.domain.membership import toggle_member
from compass_backend.errors import NotFound
from compass_backend.models import Course
from compass_backend.repositories.records_repo import RecordRepository


def course_repository(session: AsyncSession) -> RecordRepository[Course]:
    return RecordRepository(session, Course, label="course")


async def get_course(*, session: AsyncSession, course_id: str) -> Course:
    return await course_repository(session).get(course_id)


async def toggle_like(
    *, session: AsyncSession, course_id: str, user_id: int
) -> tuple[Course, bool]:
    repo = course_repository(session)
    course = await repo.get(course_id)
    course.likes, liked = toggle_member(course.likes, user_id)
    return await repo.save(course), liked


async def delete_course(*, session: AsyncSession, course_id: str) -> None:
    if not await course_repository(session).delete(course_id):
        raise NotFound("course not found")
