from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class BlobRef(BaseModel):
    external_id: str | None = None
    retrieval_url: str | None = None
    original_name: str | None = None
    byte_size: int | None = None
    mime_type: str | None = None


class Note(BaseModel):
    id: str = Field(min_length=1, max_length=36)
    title: str
    note_type: str
    description: str
    branch: str | None = None
    year: str | None = None
    subject: str | None = None
    exam_name: str | None = None
    tags: list[str]
    file: BlobRef
    download_count: int
    likes_count: int
    bookmarks_count: int
    uploaded_by: int
    created_at: datetime
    updated_at: datetime


class ToggleResult(BaseModel):
    active: bool
    count: int
