"""Pydantic schemas for Post CRUD."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PostCreate(BaseModel):
    title: str = Field(min_length=3, max_length=20)
    description: str = Field(min_length=3, max_length=300)


class PostUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=3, max_length=20)
    description: str | None = Field(default=None, min_length=3, max_length=300)


class PostRead(BaseModel):
    id: int
    title: str
    description: str
    posted_by: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
