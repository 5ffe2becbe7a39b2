"""
Book CRUD endpoints. Every book names at least one existing author.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import admin_with, get_db
from app.core.exceptions import InputValidationError, NotFoundError
from app.models.catalog import Author, Book
from app.schemas.catalog import BookCreate, BookRead, BookUpdate
from app.schemas.common import ApiResponse, MessageResponse

router = APIRouter(prefix="/books", tags=["books"])
logger = logging.getLogger(__name__)


async def _get_book_or_404(db: AsyncSession, book_id: int) -> Book:
    book = await db.get(Book, book_id)
    if book is None:
        raise NotFoundError("Book not found")
    return book


async def _load_authors(db: AsyncSession, author_ids: list[int]) -> list[Author]:
    wanted = set(author_ids)
    result = await db.execute(select(Author).where(Author.id.in_(sorted(wanted))))
    authors = list(result.scalars().all())
    missing = wanted - {a.id for a in authors}
    if missing:
        raise InputValidationError(f"Unknown author id(s): {sorted(missing)}")
    return authors


@router.get("", response_model=ApiResponse[list[BookRead]])
async def list_books(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    genre: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[list[BookRead]]:
    query = select(Book).order_by(Book.title)
    if genre:
        query = query.where(Book.genre == genre)
    result = await db.execute(query.offset(skip).limit(limit))
    books = [BookRead.model_validate(b) for b in result.scalars().all()]
    return ApiResponse(message="Books fetched successfully", payload=books)


@router.post(
    "",
    response_model=ApiResponse[BookRead],
    status_code=201,
    dependencies=admin_with("CREATE"),
)
async def create_book(
    body: BookCreate,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[BookRead]:
    book = Book(
        title=body.title,
        price=body.price,
        genre=body.genre,
        publisher=body.publisher,
        authors=await _load_authors(db, body.author_ids),
    )
    db.add(book)
    await db.commit()
    await db.refresh(book, attribute_names=["authors"])
    logger.info("Book %s created", book.id)
    return ApiResponse(message="Book created successfully", payload=BookRead.model_validate(book))


@router.get("/{book_id}", response_model=ApiResponse[BookRead])
async def get_book(
    book_id: int,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[BookRead]:
    book = await _get_book_or_404(db, book_id)
    return ApiResponse(message="Book fetched successfully", payload=BookRead.model_validate(book))


@router.put(
    "/{book_id}",
    response_model=ApiResponse[BookRead],
    dependencies=admin_with("UPDATE"),
)
async def update_book(
    book_id: int,
    body: BookUpdate,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[BookRead]:
    book = await _get_book_or_404(db, book_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "author_ids" in changes:
        book.authors = await _load_authors(db, changes.pop("author_ids"))
    for field, value in changes.items():
        setattr(book, field, value)
    await db.commit()
    await db.refresh(book, attribute_names=["title", "price", "genre", "publisher", "authors"])
    return ApiResponse(message="Book updated successfully", payload=BookRead.model_validate(book))


@router.delete(
    "/{book_id}",
    response_model=MessageResponse,
    dependencies=admin_with("DELETE"),
)
async def delete_book(
    book_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    book = await _get_book_or_404(db, book_id)
    await db.delete(book)
    await db.commit()
    logger.info("Book %s deleted", book_id)
    return MessageResponse(message="Book deleted successfully")
