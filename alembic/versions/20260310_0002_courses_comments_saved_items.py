"""courses + blog comments + users saved items

Revision ID: 20260310_0002
Revises: 20260301_0001
Create Date: 2026-03-10 00:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20260310_0002"
down_revision = "20260301_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "users",
        sa.Column("bookmarks", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
    )
    op.add_column(
        "users",
        sa.Column("favorites", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
    )

    op.create_table(
        "blog_comments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "blog_id",
            sa.String(length=36),
            sa.ForeignKey("blogs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_blog_comments_blog_id", "blog_comments", ["blog_id"], unique=False)
    op.create_index("ix_blog_comments_user_id", "blog_comments", ["user_id"], unique=False)
    op.create_index("ix_blog_comments_created_at", "blog_comments", ["created_at"], unique=False)

    op.create_table(
        "courses",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("instructor", sa.String(length=200), nullable=False),
        sa.Column("category", sa.String(length=200), nullable=False),
        sa.Column("level", sa.String(length=50), nullable=False, server_default="Beginner"),
        sa.Column("price", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("original_price", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("duration", sa.String(length=100), nullable=False),
        sa.Column("thumbnail", sa.Text(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("likes", sa.JSON(), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_ratings", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("enrolled_students", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_courses_title", "courses", ["title"], unique=False)
    op.create_index("ix_courses_category", "courses", ["category"], unique=False)
    op.create_index("ix_courses_is_published", "courses", ["is_published"], unique=False)
    op.create_index("ix_courses_created_by", "courses", ["created_by"], unique=False)
    op.create_index("ix_courses_created_at", "courses", ["created_at"], unique=False)
    op.create_index("ix_courses_updated_at", "courses", ["updated_at"], unique=False)


def downgrade() -> None:
    op.drop_table("courses")
    op.drop_table("blog_comments")
    op.drop_column("users", "favorites")
    op.drop_column("users", "bookmarks")
