from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.db import get_session
from compass_backend.deps import get_current_user
from compass_backend.models import Note, User
from compass_backend.schemas.notes import BlobRef, Note as NoteSchema, ToggleResult
from compass_backend.services import notes_service

router = APIRouter(prefix="/notes", tags=["notes"])


def blob_ref_of(row: object) -> BlobRef:
    return BlobRef(
        external_id=getattr(row, "external_id", None),
        retrieval_url=getattr(row, "retrieval_url", None),
        original_name=getattr(row, "original_name", None),
        byte_size=getattr(row, "byte_size", None),
        mime_type=getattr(row, "mime_type", None),
    )


def note_to_schema(row: Note) -> NoteSchema:
    return NoteSchema(
        id=row.id,
        title=row.title,
        note_type=row.note_type,
        description=row.description,
        branch=row.branch,
        year=row.year,
        subject=row.subject,
        exam_name=row.exam_name,
        tags=list(row.tags or []),
        file=blob_ref_of(row),
        download_count=row.download_count,
        likes_count=len(row.likes or []),
        bookmarks_count=len(row.bookmarks or []),
        uploaded_by=row.uploaded_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.get("/{note_id}", response_model=NoteSchema)
async def get_note(
    note_id: str,
    session: AsyncSession = Depends(get_session),
) -> NoteSchema:
    row = await notes_service.get_note(session=session, note_id=note_id)
    return note_to_schema(row)


@router.post("/{note_id}/download", response_model=NoteSchema)
async def download_note(
    note_id: str,
    _user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NoteSchema:
    row = await notes_service.record_download(session=session, note_id=note_id)
    return note_to_schema(row)


@router.post("/{note_id}/like", response_model=ToggleResult)
async def like_note(
    note_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ToggleResult:
    row, liked = await notes_service.toggle_like(
        session=session, note_id=note_id, user_id=int(user.id or 0)
    )
    return ToggleResult(active=liked, count=len(row.likes or []))


@router.post("/{note_id}/bookmark", response_model=ToggleResult)
async def bookmark_note(
    note_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ToggleResult:
    row, bookmarked = await notes_service.toggle_bookmark(
        session=session, note_id=note_id, user_id=int(user.id or 0)
    )
    return ToggleResult(active=bookmarked, count=len(row.bookmarks or []))
