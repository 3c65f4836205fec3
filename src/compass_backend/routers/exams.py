from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.db import get_session
from compass_backend.schemas.exams import Exam as ExamSchema
from compass_backend.schemas.exams import ExamList
from compass_backend.services import exams_service

router = APIRouter(prefix="/exams", tags=["exams"])


@router.get("", response_model=ExamList)
async def list_exams(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session),
) -> ExamList:
    rows = await exams_service.list_exams(session=session, limit=limit, offset=offset)
    return ExamList(
        items=[ExamSchema.model_validate(r, from_attributes=True) for r in rows],
        limit=limit,
        offset=offset,
    )


@router.get("/{exam_id}", response_model=ExamSchema)
async def get_exam(
    exam_id: str,
    session: AsyncSession = Depends(get_session),
) -> ExamSchema:
    row = await exams_service.get_exam(session=session, exam_id=exam_id)
    return ExamSchema.model_validate(row, from_attributes=True)
