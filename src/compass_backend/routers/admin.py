"""Administrator endpoints: note, blog and exam writes, course and user removal, dashboard stats."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.db import get_session
from compass_backend.deps import actor_for, require_admin
from compass_backend.integrations.storage.blob_store import BlobStoreRegistry, get_blob_stores
from compass_backend.models import User
from compass_backend.routers.blogs import blog_to_schema
from compass_backend.routers.notes import note_to_schema
from compass_backend.routers.uploads import form_tags, read_upload
from compass_backend.schemas.admin import DashboardStats, UserStatus
from compass_backend.schemas.blogs import Blog as BlogSchema
from compass_backend.schemas.exams import Exam as ExamSchema
from compass_backend.schemas.exams import ExamCreateRequest, ExamPatchRequest
from compass_backend.schemas.notes import Note as NoteSchema
from compass_backend.services import admin_service, courses_service, exams_service
from compass_backend.services.blogs_service import BLOG_IMAGE_EXTENSIONS, blog_coordinator
from compass_backend.services.notes_service import NOTE_FILE_EXTENSIONS, note_coordinator

router = APIRouter(prefix="/admin", tags=["admin"])

logger = logging.getLogger(__name__)

OptionalForm = Annotated[str | None, Form()]
TagsForm = Annotated[list[str] | None, Form()]
OptionalFile = Annotated[UploadFile | None, File()]


def _form_fields(**values: object) -> dict[str, object]:
    return {k: v for k, v in values.items() if v is not None}


@router.post("/notes", response_model=NoteSchema, status_code=status.HTTP_201_CREATED)
async def create_note(
    title: OptionalForm = None,
    note_type: OptionalForm = None,
    description: OptionalForm = None,
    branch: OptionalForm = None,
    year: OptionalForm = None,
    subject: OptionalForm = None,
    exam_name: OptionalForm = None,
    tags: TagsForm = None,
    file: OptionalFile = None,
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    stores: BlobStoreRegistry = Depends(get_blob_stores),
) -> NoteSchema:
    upload = await read_upload(file, field="file", allowed_extensions=NOTE_FILE_EXTENSIONS)
    logger.info(
        "note create requested user_id=%s title=%s has_file=%s", user.id, title, upload is not None
    )
    row = await note_coordinator(session, stores).upsert_attachment_record(
        actor=actor_for(user),
        fields=_form_fields(
            title=title,
            note_type=note_type,
            description=description,
            branch=branch,
            year=year,
            subject=subject,
            exam_name=exam_name,
            tags=form_tags(tags),
        ),
        upload=upload,
    )
    return note_to_schema(row)


@router.put("/notes/{note_id}", response_model=NoteSchema)
async def update_note(
    note_id: str,
    title: OptionalForm = None,
    note_type: OptionalForm = None,
    description: OptionalForm = None,
    branch: OptionalForm = None,
    year: OptionalForm = None,
    subject: OptionalForm = None,
    exam_name: OptionalForm = None,
    tags: TagsForm = None,
    file: OptionalFile = None,
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    stores: BlobStoreRegistry = Depends(get_blob_stores),
) -> NoteSchema:
    upload = await read_upload(file, field="file", allowed_extensions=NOTE_FILE_EXTENSIONS)
    logger.info("note update requested note_id=%s has_file=%s", note_id, upload is not None)
    row = await note_coordinator(session, stores).upsert_attachment_record(
        actor=actor_for(user),
        record_id=note_id,
        fields=_form_fields(
            title=title,
            note_type=note_type,
            description=description,
            branch=branch,
            year=year,
            subject=subject,
            exam_name=exam_name,
            tags=form_tags(tags),
        ),
        upload=upload,
    )
    return note_to_schema(row)


@router.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: str,
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    stores: BlobStoreRegistry = Depends(get_blob_stores),
) -> Response:
    await note_coordinator(session, stores).delete_attachment_record(
        actor=actor_for(user), record_id=note_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/blogs", response_model=BlogSchema, status_code=status.HTTP_201_CREATED)
async def create_blog(
    title: OptionalForm = None,
    summary: OptionalForm = None,
    excerpt: OptionalForm = None,
    content: OptionalForm = None,
    category: OptionalForm = None,
    author: OptionalForm = None,
    publish_date: OptionalForm = None,
    read_time: OptionalForm = None,
    tags: TagsForm = None,
    image: OptionalFile = None,
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    stores: BlobStoreRegistry = Depends(get_blob_stores),
) -> BlogSchema:
    upload = await read_upload(image, field="image", allowed_extensions=BLOG_IMAGE_EXTENSIONS)
    logger.info(
        "blog create requested user_id=%s title=%s has_image=%s", user.id, title, upload is not None
    )
    row = await blog_coordinator(session, stores).upsert_attachment_record(
        actor=actor_for(user),
        fields=_form_fields(
            title=title,
            summary=summary,
            excerpt=excerpt,
            content=content,
            category=category,
            author=author,
            publish_date=publish_date,
            read_time=read_time,
            tags=form_tags(tags),
        ),
        upload=upload,
    )
    return blog_to_schema(row)


@router.put("/blogs/{blog_id}", response_model=BlogSchema)
async def update_blog(
    blog_id: str,
    title: OptionalForm = None,
    summary: OptionalForm = None,
    excerpt: OptionalForm = None,
    content: OptionalForm = None,
    category: OptionalForm = None,
    author: OptionalForm = None,
    publish_date: OptionalForm = None,
    read_time: OptionalForm = None,
    tags: TagsForm = None,
    image: OptionalFile = None,
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    stores: BlobStoreRegistry = Depends(get_blob_stores),
) -> BlogSchema:
    upload = await read_upload(image, field="image", allowed_extensions=BLOG_IMAGE_EXTENSIONS)
    logger.info("blog update requested blog_id=%s has_image=%s", blog_id, upload is not None)
    row = await blog_coordinator(session, stores).upsert_attachment_record(
        actor=actor_for(user),
        record_id=blog_id,
        fields=_form_fields(
            title=title,
            summary=summary,
            excerpt=excerpt,
            content=content,
            category=category,
            author=author,
            publish_date=publish_date,
            read_time=read_time,
            tags=form_tags(tags),
        ),
        upload=upload,
    )
    return blog_to_schema(row)


@router.delete("/blogs/{blog_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_blog(
    blog_id: str,
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    stores: BlobStoreRegistry = Depends(get_blob_stores),
) -> Response:
    await blog_coordinator(session, stores).delete_attachment_record(
        actor=actor_for(user), record_id=blog_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/exams", response_model=ExamSchema, status_code=status.HTTP_201_CREATED)
async def create_exam(
    payload: ExamCreateRequest,
    _user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> ExamSchema:
    row = await exams_service.create_exam(session=session, payload=payload)
    return ExamSchema.model_validate(row, from_attributes=True)


@router.put("/exams/{exam_id}", response_model=ExamSchema)
async def update_exam(
    exam_id: str,
    payload: ExamPatchRequest,
    _user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> ExamSchema:
    row = await exams_service.update_exam(session=session, exam_id=exam_id, payload=payload)
    return ExamSchema.model_validate(row, from_attributes=True)


@router.delete("/exams/{exam_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exam(
    exam_id: str,
    _user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await exams_service.delete_exam(session=session, exam_id=exam_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: str,
    _user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await courses_service.delete_course(session=session, course_id=course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats", response_model=DashboardStats)
async def stats(
    _user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> DashboardStats:
    return DashboardStats.model_validate(await admin_service.dashboard_stats(session=session))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await admin_service.delete_user(
        session=session, user_id=user_id, acting_admin_id=int(user.id or 0)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/users/{user_id}/toggle-status", response_model=UserStatus)
async def toggle_user_status(
    user_id: int,
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> UserStatus:
    row = await admin_service.toggle_user_active(
        session=session, user_id=user_id, acting_admin_id=int(user.id or 0)
    )
    return UserStatus(id=int(row.id or 0), is_active=row.is_active)
