# basedpyright: reportAssignmentType=false
# basedpyright: reportIncompatibleVariableOverride=false

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Text
from sqlalchemy.types import JSON as SAJSON
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(index=True, unique=True, min_length=3, max_length=255)
    password_hash: str = Field(min_length=1, max_length=255)

    # Opaque bearer token issued on login.
    api_token: Optional[str] = Field(default=None, index=True, unique=True, max_length=128)
    token_expires_at: Optional[datetime] = Field(default=None)

    is_active: bool = Field(default=True, index=True)
    is_admin: bool = Field(default=False, index=True)
    # Saved items: [{"item_type": "course" | "note" | "blog", "item_id": "..."}].
    bookmarks: list[dict[str, str]] = Field(
        default_factory=list, sa_column=Column(SAJSON, nullable=False)
    )
    favorites: list[dict[str, str]] = Field(
        default_factory=list, sa_column=Column(SAJSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utc_now, index=True)


class BlobRefColumns(SQLModel):
    """Columns describing the externally stored blob of a record.

    ``external_id`` and ``retrieval_url`` are written together or not at all.
    """

    external_id: Optional[str] = Field(default=None, max_length=500)
    # sa_type rather than sa_column: a Column instance cannot be shared by two tables.
    retrieval_url: Optional[str] = Field(default=None, sa_type=Text)
    original_name: Optional[str] = Field(default=None, max_length=500)
    byte_size: Optional[int] = Field(default=None, ge=0)
    mime_type: Optional[str] = Field(default=None, max_length=200)
    # Name of the blob store holding the object (documents | images | local).
    blob_backend: Optional[str] = Field(default=None, max_length=50)


class Note(BlobRefColumns, table=True):
    __tablename__ = "notes"  # pyright: ignore[reportAssignmentType]

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    title: str = Field(index=True, max_length=500)
    # College | Government Exam | Other
    note_type: str = Field(index=True, max_length=50)
    description: str = Field(default="", sa_column=Column(Text, nullable=False))

    branch: Optional[str] = Field(default=None, max_length=200)
    year: Optional[str] = Field(default=None, max_length=50)
    subject: Optional[str] = Field(default=None, max_length=200)
    exam_name: Optional[str] = Field(default=None, max_length=200)

    tags: list[str] = Field(default_factory=list, sa_column=Column(SAJSON, nullable=False))
    likes: list[int] = Field(default_factory=list, sa_column=Column(SAJSON, nullable=False))
    bookmarks: list[int] = Field(default_factory=list, sa_column=Column(SAJSON, nullable=False))
    download_count: int = Field(default=0, ge=0)

    uploaded_by: int = Field(index=True, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, index=True)


class Blog(BlobRefColumns, table=True):
    __tablename__ = "blogs"  # pyright: ignore[reportAssignmentType]

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    title: str = Field(index=True, max_length=500)
    summary: str = Field(default="", sa_column=Column(Text, nullable=False))
    excerpt: str = Field(default="", sa_column=Column(Text, nullable=False))
    content: str = Field(default="", sa_column=Column(Text, nullable=False))
    category: str = Field(index=True, max_length=200)
    author: str = Field(max_length=200)
    publish_date: datetime = Field(index=True)
    read_time: str = Field(max_length=50)

    tags: list[str] = Field(default_factory=list, sa_column=Column(SAJSON, nullable=False))
    likes: list[int] = Field(default_factory=list, sa_column=Column(SAJSON, nullable=False))
    is_published: bool = Field(default=True, index=True)
    views: int = Field(default=0, ge=0)

    uploaded_by: int = Field(index=True, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, index=True)


class Exam(SQLModel, table=True):
    __tablename__ = "exams"  # pyright: ignore[reportAssignmentType]

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    name: str = Field(index=True, max_length=200)
    full_name: str = Field(max_length=500)
    category: str = Field(index=True, max_length=200)
    level: str = Field(max_length=100)
    exam_date: str = Field(max_length=100)
    application_deadline: str = Field(max_length=100)
    eligibility: str = Field(sa_column=Column(Text, nullable=False))
    pattern: str = Field(sa_column=Column(Text, nullable=False))
    colleges: int = Field(default=0, ge=0)
    description: str = Field(sa_column=Column(Text, nullable=False))
    subjects: list[str] = Field(default_factory=list, sa_column=Column(SAJSON, nullable=False))

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, index=True)


class BlogComment(SQLModel, table=True):
    __tablename__ = "blog_comments"  # pyright: ignore[reportAssignmentType]

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    blog_id: str = Field(index=True, foreign_key="blogs.id", ondelete="CASCADE", max_length=36)
    user_id: int = Field(index=True, foreign_key="users.id", ondelete="CASCADE")
    content: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=utc_now, index=True)


class Course(SQLModel, table=True):
    __tablename__ = "courses"  # pyright: ignore[reportAssignmentType]

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    title: str = Field(index=True, max_length=500)
    description: str = Field(sa_column=Column(Text, nullable=False))
    instructor: str = Field(max_length=200)
    category: str = Field(index=True, max_length=200)
    # Beginner | Intermediate | Advanced
    level: str = Field(default="Beginner", max_length=50)
    price: float = Field(default=0, ge=0)
    original_price: float = Field(default=0, ge=0)
    duration: str = Field(max_length=100)
    thumbnail: str = Field(sa_type=Text)

    tags: list[str] = Field(default_factory=list, sa_column=Column(SAJSON, nullable=False))
    likes: list[int] = Field(default_factory=list, sa_column=Column(SAJSON, nullable=False))
    rating: float = Field(default=0, ge=0, le=5)
    total_ratings: int = Field(default=0, ge=0)
    enrolled_students: int = Field(default=0, ge=0)
    is_published: bool = Field(default=True, index=True)

    created_by: int = Field(index=True, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, index=True)
