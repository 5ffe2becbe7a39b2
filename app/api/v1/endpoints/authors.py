"""
Author CRUD endpoints. Reads are public; writes are Admin-only and need
the matching CREATE / UPDATE / DELETE permission.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import admin_with, get_db
from app.core.exceptions import NotFoundError
from app.models.catalog import Author
from app.schemas.catalog import AuthorCreate, AuthorRead, AuthorUpdate
from app.schemas.common import ApiResponse, MessageResponse

router = APIRouter(prefix="/authors", tags=["authors"])
logger = logging.getLogger(__name__)


async def _get_author_or_404(db: AsyncSession, author_id: int) -> Author:
    author = await db.get(Author, author_id)
    if author is None:
        raise NotFoundError("Author not found")
    return author


@router.get("", response_model=ApiResponse[list[AuthorRead]])
async def list_authors(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[list[AuthorRead]]:
    result = await db.execute(select(Author).order_by(Author.name).offset(skip).limit(limit))
    authors = [AuthorRead.model_validate(a) for a in result.scalars().all()]
    return ApiResponse(message="Authors fetched successfully", payload=authors)


@router.post(
    "",
    response_model=ApiResponse[AuthorRead],
    status_code=201,
    dependencies=admin_with("CREATE"),
)
async def create_author(
    body: AuthorCreate,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[AuthorRead]:
    author = Author(name=body.name, description=body.description)
    db.add(author)
    await db.commit()
    await db.refresh(author, attribute_names=["books"])
    logger.info("Author %s created", author.id)
    return ApiResponse(message="Author created successfully", payload=AuthorRead.model_validate(author))


@router.get("/{author_id}", response_model=ApiResponse[AuthorRead])
async def get_author(
    author_id: int,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[AuthorRead]:
    author = await _get_author_or_404(db, author_id)
    return ApiResponse(message="Author fetched successfully", payload=AuthorRead.model_validate(author))


@router.put(
    "/{author_id}",
    response_model=ApiResponse[AuthorRead],
    dependencies=admin_with("UPDATE"),
)
async def update_author(
    author_id: int,
    body: AuthorUpdate,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[AuthorRead]:
    author = await _get_author_or_404(db, author_id)
    for field, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(author, field, value)
    await db.commit()
    await db.refresh(author, attribute_names=["name", "description", "books"])
    return ApiResponse(message="Author updated successfully", payload=AuthorRead.model_validate(author))


@router.delete(
    "/{author_id}",
    response_model=MessageResponse,
    dependencies=admin_with("DELETE"),
)
async def delete_author(
    author_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    author = await _get_author_or_404(db, author_id)
    await db.delete(author)
    await db.commit()
    logger.info("Author %s deleted", author_id)
    return MessageResponse(message="Author deleted successfully")
