"""Pydantic schemas for Authors & Books."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# ── Authors ─────────────────────────────────────────────────────────
class AuthorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=1000)


class AuthorUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=1000)


class AuthorRef(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class BookRef(BaseModel):
    id: int
    title: str

    model_config = ConfigDict(from_attributes=True)


class AuthorRead(AuthorRef):
    description: str
    books: list[BookRef] = []


# ── Books ───────────────────────────────────────────────────────────
class BookCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    author_ids: list[int] = Field(min_length=1, alias="authors")
    price: float = Field(ge=0)
    genre: str = Field(min_length=1, max_length=100)
    publisher: str = Field(min_length=1, max_length=200)

    model_config = ConfigDict(populate_by_name=True)


class BookUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=300)
    author_ids: list[int] | None = Field(default=None, min_length=1, alias="authors")
    price: float | None = Field(default=None, ge=0)
    genre: str | None = Field(default=None, min_length=1, max_length=100)
    publisher: str | None = Field(default=None, min_length=1, max_length=200)

    model_config = ConfigDict(populate_by_name=True)


class BookRead(BookRef):
    price: float
    genre: str
    publisher: str
    authors: list[AuthorRef] = []
