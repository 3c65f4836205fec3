"""init schema (users + notes + blogs + exams)

Revision ID: 20260301_0001
Revises: None
Create Date: 2026-03-01 00:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "20260301_0001"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def _blob_ref_columns() -> list[sa.Column]:
    return [
        sa.Column("external_id", sa.String(length=500), nullable=True),
        sa.Column("retrieval_url", sa.Text(), nullable=True),
        sa.Column("original_name", sa.String(length=500), nullable=True),
        sa.Column("byte_size", sa.Integer(), nullable=True),
        sa.Column("mime_type", sa.String(length=200), nullable=True),
        sa.Column("blob_backend", sa.String(length=50), nullable=True),
    ]


def upgrade() -> None:
    if not _table_exists("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("api_token", sa.String(length=128), nullable=True),
            sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_users_email", "users", ["email"], unique=True)
        op.create_index("ix_users_api_token", "users", ["api_token"], unique=True)
        op.create_index("ix_users_is_active", "users", ["is_active"], unique=False)
        op.create_index("ix_users_is_admin", "users", ["is_admin"], unique=False)
        op.create_index("ix_users_created_at", "users", ["created_at"], unique=False)

    if not _table_exists("notes"):
        op.create_table(
            "notes",
            sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
            sa.Column("title", sa.String(length=500), nullable=False),
            sa.Column("note_type", sa.String(length=50), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("branch", sa.String(length=200), nullable=True),
            sa.Column("year", sa.String(length=50), nullable=True),
            sa.Column("subject", sa.String(length=200), nullable=True),
            sa.Column("exam_name", sa.String(length=200), nullable=True),
            sa.Column("tags", sa.JSON(), nullable=False),
            sa.Column("likes", sa.JSON(), nullable=False),
            sa.Column("bookmarks", sa.JSON(), nullable=False),
            sa.Column("download_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
            *_blob_ref_columns(),
            sa.Column("uploaded_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_notes_title", "notes", ["title"], unique=False)
        op.create_index("ix_notes_note_type", "notes", ["note_type"], unique=False)
        op.create_index("ix_notes_uploaded_by", "notes", ["uploaded_by"], unique=False)
        op.create_index("ix_notes_created_at", "notes", ["created_at"], unique=False)
        op.create_index("ix_notes_updated_at", "notes", ["updated_at"], unique=False)

    if not _table_exists("blogs"):
        op.create_table(
            "blogs",
            sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
            sa.Column("title", sa.String(length=500), nullable=False),
            sa.Column("summary", sa.Text(), nullable=False),
            sa.Column("excerpt", sa.Text(), nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("category", sa.String(length=200), nullable=False),
            sa.Column("author", sa.String(length=200), nullable=False),
            sa.Column("publish_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("read_time", sa.String(length=50), nullable=False),
            sa.Column("tags", sa.JSON(), nullable=False),
            sa.Column("likes", sa.JSON(), nullable=False),
            sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
            *_blob_ref_columns(),
            sa.Column("uploaded_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_blogs_title", "blogs", ["title"], unique=False)
        op.create_index("ix_blogs_category", "blogs", ["category"], unique=False)
        op.create_index("ix_blogs_publish_date", "blogs", ["publish_date"], unique=False)
        op.create_index("ix_blogs_is_published", "blogs", ["is_published"], unique=False)
        op.create_index("ix_blogs_uploaded_by", "blogs", ["uploaded_by"], unique=False)
        op.create_index("ix_blogs_created_at", "blogs", ["created_at"], unique=False)
        op.create_index("ix_blogs_updated_at", "blogs", ["updated_at"], unique=False)

    if not _table_exists("exams"):
        op.create_table(
            "exams",
            sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("full_name", sa.String(length=500), nullable=False),
            sa.Column("category", sa.String(length=200), nullable=False),
            sa.Column("level", sa.String(length=100), nullable=False),
            sa.Column("exam_date", sa.String(length=100), nullable=False),
            sa.Column("application_deadline", sa.String(length=100), nullable=False),
            sa.Column("eligibility", sa.Text(), nullable=False),
            sa.Column("pattern", sa.Text(), nullable=False),
            sa.Column("colleges", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("subjects", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_exams_name", "exams", ["name"], unique=False)
        op.create_index("ix_exams_category", "exams", ["category"], unique=False)
        op.create_index("ix_exams_created_at", "exams", ["created_at"], unique=False)
        op.create_index("ix_exams_updated_at", "exams", ["updated_at"], unique=False)


def downgrade() -> None:
    op.drop_table("exams")
    op.drop_table("blogs")
    op.drop_table("notes")
    op.drop_table("users")
