"""Pydantic schemas for JWT tokens and login."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from app.schemas.user import UserSummary


class TokenPayload(BaseModel):
    sub: str
    type: str
    jti: str | None = None
    iat: datetime
    exp: datetime


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResult(BaseModel):
    data: UserSummary
    token: str
    token_type: str = "bearer"
