from __future__ import annotations

import uuid
from collections.abc import Mapping

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.config import settings
from compass_backend.domain.attachments import (
    clean_text,
    normalize_tags,
    parse_publish_date,
    validate_blog_fields,
)
from compass_backend.domain.membership import toggle_member
from compass_backend.errors import ValidationFailed
from compass_backend.integrations.storage.blob_store import BlobStoreRegistry
from compass_backend.integrations.storage.routing import blog_router
from compass_backend.models import Blog, BlogComment, User
from compass_backend.repositories.records_repo import RecordRepository
from compass_backend.services.upsert_coordinator import (
    AttachmentEntity,
    AttachmentUpsertCoordinator,
)

BLOG_FIELDS = (
    "title",
    "summary",
    "excerpt",
    "content",
    "category",
    "author",
    "publish_date",
    "read_time",
    "tags",
)

BLOG_IMAGE_EXTENSIONS = frozenset({"jpeg", "jpg", "png", "gif"})


def _normalize_blog_input(fields: Mapping[str, object]) -> dict[str, object]:
    out = dict(fields)
    if "publish_date" in out:
        out["publish_date"] = parse_publish_date(out["publish_date"])
    if "tags" in out:
        out["tags"] = normalize_tags(out["tags"])
    return out


def blog_entity() -> AttachmentEntity:
    return AttachmentEntity(
        label="blog",
        editable_fields=BLOG_FIELDS,
        normalize=_normalize_blog_input,
        validate=validate_blog_fields,
        router=blog_router(settings.cloudinary_folder),
        upload_field="image",
    )


def blog_repository(session: AsyncSession) -> RecordRepository[Blog]:
    return RecordRepository(session, Blog, validate=validate_blog_fields, label="blog")


def blog_coordinator(
    session: AsyncSession, stores: BlobStoreRegistry
) -> AttachmentUpsertCoordinator:
    return AttachmentUpsertCoordinator(
        repository=blog_repository(session),
        stores=stores,
        entity=blog_entity(),
        duplicate_window_seconds=settings.duplicate_window_seconds,
    )


async def view_blog(*, session: AsyncSession, blog_id: str) -> Blog:
    repo = blog_repository(session)
    blog = await repo.get(blog_id)
    blog.views = (blog.views or 0) + 1
    return await repo.save(blog)


async def toggle_like(*, session: AsyncSession, blog_id: str, user_id: int) -> tuple[Blog, bool]:
    repo = blog_repository(session)
    blog = await repo.get(blog_id)
    blog.likes, liked = toggle_member(blog.likes, user_id)
    return await repo.save(blog), liked


def comment_repository(session: AsyncSession) -> RecordRepository[BlogComment]:
    return RecordRepository(session, BlogComment, label="comment")


async def add_comment(
    *, session: AsyncSession, blog_id: str, user_id: int, content: str
) -> BlogComment:
    # 404 before validating the body.
    await blog_repository(session).get(blog_id)
    text = clean_text(content)
    if text is None:
        raise ValidationFailed("content", "required")
    return await comment_repository(session).create(
        {"id": str(uuid.uuid4()), "blog_id": blog_id, "user_id": user_id, "content": text}
    )


async def list_comments(*, session: AsyncSession, blog_id: str) -> list[tuple[BlogComment, str]]:
    """Comments of a blog, oldest first, paired with the commenter's name."""
    stmt = (
        select(BlogComment, User.name)
        .join(User, User.id == BlogComment.user_id)  # pyright: ignore[reportArgumentType]
        .where(BlogComment.blog_id == blog_id)
        .order_by(BlogComment.created_at.asc())  # pyright: ignore[reportAttributeAccessIssue]
    )
    rows = (await session.exec(stmt)).all()
    return [(comment, name) for comment, name in rows]
