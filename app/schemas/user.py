"""Pydantic schemas for User CRUD and password reset."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

_VALID_GENDERS = {"Male", "Female", "Other"}
_VALID_ROLES = {"Admin", "User"}


def _check_email(v: str) -> str:
    v = v.strip()
    if "@" not in v or v.startswith("@") or v.endswith("@"):
        raise ValueError("Invalid email address")
    return v


def _check_gender(v: str | None) -> str | None:
    if v is not None and v not in _VALID_GENDERS:
        raise ValueError(f"Gender must be one of: {sorted(_VALID_GENDERS)}")
    return v


class UserCreate(BaseModel):
    name: str = Field(min_length=3, max_length=200)
    email: str
    password: str = Field(min_length=8, max_length=72)
    date_of_birth: date | None = Field(default=None, alias="dateOfBirth")
    address: str | None = None
    gender: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("gender")
    @classmethod
    def _gender(cls, v: str | None) -> str | None:
        return _check_gender(v)


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=200)
    email: str | None = None
    password: str | None = Field(default=None, min_length=8, max_length=72)
    date_of_birth: date | None = Field(default=None, alias="dateOfBirth")
    address: str | None = None
    gender: str | None = None
    role: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return None if v is None else _check_email(v)

    @field_validator("gender")
    @classmethod
    def _gender(cls, v: str | None) -> str | None:
        return _check_gender(v)

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str | None) -> str | None:
        if v is not None and v not in _VALID_ROLES:
            raise ValueError(f"Role must be one of: {sorted(_VALID_ROLES)}")
        return v


class UserSummary(BaseModel):
    id: str
    name: str
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class UserRead(UserSummary):
    date_of_birth: date | None = None
    address: str | None = None
    gender: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ── Password reset ──────────────────────────────────────────────────
class ForgotPasswordRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)


class ChangePasswordRequest(BaseModel):
    new_password: str = Field(min_length=8, max_length=72, alias="newPassword")
    confirm_password: str = Field(max_length=72, alias="confirmPassword")

    model_config = ConfigDict(populate_by_name=True)
