from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from compass_backend.schemas.notes import BlobRef


class BlogComment(BaseModel):
    id: str
    blog_id: str
    user_id: int
    user_name: str
    content: str
    created_at: datetime


class CommentCreateRequest(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


class Blog(BaseModel):
    id: str
    title: str
    summary: str
    excerpt: str
    content: str
    category: str
    author: str
    publish_date: datetime
    read_time: str
    tags: list[str]
    image: BlobRef
    is_published: bool
    views: int
    likes_count: int
    # Filled on the public detail view only.
    comments: list[BlogComment] = Field(default_factory=list)
    uploaded_by: int
    created_at: datetime
    updated_at: datetime
