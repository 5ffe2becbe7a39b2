"""
Post CRUD endpoints.

- GET operations are public.
- POST requires any authenticated user; the post belongs to that user.
- PUT requires the "UPDATE" permission and is limited to the post's author
  or an Admin.
- DELETE requires the "DELETE" permission.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_current_user, get_db, require_permission
from app.core.exceptions import ForbiddenError, NotFoundError
from app.models.post import Post
from app.models.user import User
from app.schemas.common import ApiResponse, MessageResponse
from app.schemas.post import PostCreate, PostRead, PostUpdate

router = APIRouter(prefix="/posts", tags=["posts"])
logger = logging.getLogger(__name__)

ADMIN_ROLE = "Admin"


async def _get_post_or_404(db: AsyncSession, post_id: int) -> Post:
    post = await db.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


@router.get("", response_model=ApiResponse[list[PostRead]])
async def list_posts(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    posted_by: str | None = Query(None, alias="postedBy"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[list[PostRead]]:
    query = select(Post).order_by(Post.created_at.desc())
    if posted_by:
        query = query.where(Post.posted_by == posted_by)
    result = await db.execute(query.offset(skip).limit(limit))
    posts = [PostRead.model_validate(p) for p in result.scalars().all()]
    return ApiResponse(message="Posts fetched successfully", payload=posts)


@router.post("", response_model=ApiResponse[PostRead], status_code=201)
async def create_post(
    body: PostCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[PostRead]:
    post = Post(title=body.title, description=body.description, posted_by=current_user.id)
    db.add(post)
    await db.commit()
    await db.refresh(post)
    logger.info("Post %s created by %s", post.id, current_user.id)
    return ApiResponse(message="Post created successfully", payload=PostRead.model_validate(post))


@router.get("/{post_id}", response_model=ApiResponse[PostRead])
async def get_post(
    post_id: int,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[PostRead]:
    post = await _get_post_or_404(db, post_id)
    return ApiResponse(message="Post fetched successfully", payload=PostRead.model_validate(post))


@router.put("/{post_id}", response_model=ApiResponse[PostRead])
async def update_post(
    post_id: int,
    body: PostUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission("UPDATE")),
) -> ApiResponse[PostRead]:
    post = await _get_post_or_404(db, post_id)
    if post.posted_by != current_user.id and current_user.role != ADMIN_ROLE:
        raise ForbiddenError("You can only update your own posts")
    for field, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(post, field, value)
    await db.commit()
    await db.refresh(post)
    return ApiResponse(message="Post updated successfully", payload=PostRead.model_validate(post))


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission("DELETE"))],
)
async def delete_post(
    post_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    post = await _get_post_or_404(db, post_id)
    await db.delete(post)
    await db.commit()
    logger.info("Post %s deleted", post_id)
    return MessageResponse(message="Post deleted successfully")
