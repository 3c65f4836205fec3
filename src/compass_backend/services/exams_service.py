from __future__ import annotations

import uuid

from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.errors import NotFound
from compass_backend.models import Exam
from compass_backend.repositories.records_repo import RecordRepository
from compass_backend.schemas.exams import ExamCreateRequest, ExamPatchRequest


def exam_repository(session: AsyncSession) -> RecordRepository[Exam]:
    return RecordRepository(session, Exam, label="exam")


async def create_exam(*, session: AsyncSession, payload: ExamCreateRequest) -> Exam:
    fields = payload.model_dump()
    fields["id"] = str(uuid.uuid4())
    return await exam_repository(session).create(fields)


async def update_exam(*, session: AsyncSession, exam_id: str, payload: ExamPatchRequest) -> Exam:
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    return await exam_repository(session).update(exam_id, fields)


async def delete_exam(*, session: AsyncSession, exam_id: str) -> None:
    if not await exam_repository(session).delete(exam_id):
        raise NotFound("exam not found")


async def get_exam(*, session: AsyncSession, exam_id: str) -> Exam:
    return await exam_repository(session).get(exam_id)


async def list_exams(*, session: AsyncSession, limit: int, offset: int) -> list[Exam]:
    return await exam_repository(session).list_recent(limit=limit, offset=offset)
