from __future__ import annotations

from collections.abc import Mapping

from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.config import settings
from compass_backend.domain.attachments import (
    normalize_note_type,
    normalize_tags,
    validate_note_fields,
)
from compass_backend.domain.membership import toggle_member
from compass_backend.integrations.storage.blob_store import BlobStoreRegistry
from compass_backend.integrations.storage.routing import NOTE_ROUTER
from compass_backend.models import Note
from compass_backend.repositories.records_repo import RecordRepository
from compass_backend.services.upsert_coordinator import (
    AttachmentEntity,
    AttachmentUpsertCoordinator,
)

NOTE_FIELDS = (
    "title",
    "note_type",
    "description",
    "branch",
    "year",
    "subject",
    "exam_name",
    "tags",
)

# Accepted upload types for note files.
NOTE_FILE_EXTENSIONS = frozenset({"pdf", "doc", "docx", "ppt", "pptx", "txt"})


def _normalize_note_input(fields: Mapping[str, object]) -> dict[str, object]:
    out = dict(fields)
    if "note_type" in out:
        out["note_type"] = normalize_note_type(out["note_type"])
    if "tags" in out:
        out["tags"] = normalize_tags(out["tags"])
    return out


NOTE_ENTITY = AttachmentEntity(
    label="note",
    editable_fields=NOTE_FIELDS,
    normalize=_normalize_note_input,
    validate=validate_note_fields,
    router=NOTE_ROUTER,
    upload_field="file",
)


def note_repository(session: AsyncSession) -> RecordRepository[Note]:
    return RecordRepository(session, Note, validate=validate_note_fields, label="note")


def note_coordinator(
    session: AsyncSession, stores: BlobStoreRegistry
) -> AttachmentUpsertCoordinator:
    return AttachmentUpsertCoordinator(
        repository=note_repository(session),
        stores=stores,
        entity=NOTE_ENTITY,
        duplicate_window_seconds=settings.duplicate_window_seconds,
    )


async def get_note(*, session: AsyncSession, note_id: str) -> Note:
    return await note_repository(session).get(note_id)


async def record_download(*, session: AsyncSession, note_id: str) -> Note:
    repo = note_repository(session)
    note = await repo.get(note_id)
    note.download_count = (note.download_count or 0) + 1
    return await repo.save(note)


async def toggle_like(*, session: AsyncSession, note_id: str, user_id: int) -> tuple[Note, bool]:
    repo = note_repository(session)
    note = await repo.get(note_id)
    note.likes, liked = toggle_member(note.likes, user_id)
    return await repo.save(note), liked


async def toggle_bookmark(
    *, session: AsyncSession, note_id: str, user_id: int
) -> tuple[Note, bool]:
    repo = note_repository(session)
    note = await repo.get(note_id)
    note.bookmarks, bookmarked = toggle_member(note.bookmarks, user_id)
    return await repo.save(note), bookmarked
