from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.db import get_session
from compass_backend.deps import get_current_user
from compass_backend.models import Blog, BlogComment, User
from compass_backend.routers.notes import blob_ref_of
from compass_backend.schemas.blogs import Blog as BlogSchema
from compass_backend.schemas.blogs import BlogComment as BlogCommentSchema
from compass_backend.schemas.blogs import CommentCreateRequest
from compass_backend.schemas.notes import ToggleResult
from compass_backend.services import blogs_service

router = APIRouter(prefix="/blogs", tags=["blogs"])


def comment_to_schema(row: BlogComment, user_name: str) -> BlogCommentSchema:
    return BlogCommentSchema(
        id=row.id,
        blog_id=row.blog_id,
        user_id=row.user_id,
        user_name=user_name,
        content=row.content,
        created_at=row.created_at,
    )


def blog_to_schema(row: Blog) -> BlogSchema:
    return BlogSchema(
        id=row.id,
        title=row.title,
        summary=row.summary,
        excerpt=row.excerpt,
        content=row.content,
        category=row.category,
        author=row.author,
        publish_date=row.publish_date,
        read_time=row.read_time,
        tags=list(row.tags or []),
        image=blob_ref_of(row),
        is_published=row.is_published,
        views=row.views,
        likes_count=len(row.likes or []),
        uploaded_by=row.uploaded_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.get("/{blog_id}", response_model=BlogSchema)
async def get_blog(
    blog_id: str,
    session: AsyncSession = Depends(get_session),
) -> BlogSchema:
    row = await blogs_service.view_blog(session=session, blog_id=blog_id)
    out = blog_to_schema(row)
    comments = await blogs_service.list_comments(session=session, blog_id=blog_id)
    out.comments = [comment_to_schema(c, name) for c, name in comments]
    return out


@router.post("/{blog_id}/like", response_model=ToggleResult)
async def like_blog(
    blog_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ToggleResult:
    row, liked = await blogs_service.toggle_like(
        session=session, blog_id=blog_id, user_id=int(user.id or 0)
    )
    return ToggleResult(active=liked, count=len(row.likes or []))


@router.post("/{blog_id}/comment", response_model=BlogCommentSchema, status_code=201)
async def comment_on_blog(
    blog_id: str,
    payload: CommentCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> BlogCommentSchema:
    row = await blogs_service.add_comment(
        session=session, blog_id=blog_id, user_id=int(user.id or 0), content=payload.content
    )
    return comment_to_schema(row, user.name)
