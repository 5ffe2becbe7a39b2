"""
Author & Book models: many-to-many catalogue.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from app.db.base import Base

author_books = Table(
    "author_books",
    Base.metadata,
    Column("author_id", Integer, ForeignKey("authors.id", ondelete="CASCADE"), primary_key=True),
    Column("book_id", Integer, ForeignKey("books.id", ondelete="CASCADE"), primary_key=True),
)


class Author(Base):
    __tablename__ = "authors"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    description: str = Column(String(1000), nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    books = relationship(
        "Book",
        secondary=author_books,
        back_populates="authors",
        lazy="selectin",
    )


class Book(Base):
    __tablename__ = "books"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    title: str = Column(String(300), nullable=False)  # type: ignore[assignment]
    price: float = Column(Float, nullable=False)  # type: ignore[assignment]
    genre: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    publisher: str = Column(String(200), nullable=False)  # type: ignore[assignment]

    authors = relationship(
        "Author",
        secondary=author_books,
        back_populates="books",
        lazy="selectin",
    )
