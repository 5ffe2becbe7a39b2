"""
User CRUD endpoints.

- Registration (POST /users) is open; new accounts always get role "User".
- Reads require a valid bearer token.
- Updates are limited to the account owner or an Admin; only an Admin may
  change a role.
- DELETE requires role "User" and the "DELETE" permission.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, Query

from app.api.v1.deps import (get_current_principal, get_current_user,
                             get_user_store, require_permission, require_role)
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.core.security import get_password_hash
from app.crud.users import UserStore
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.user import UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)

ADMIN_ROLE = "Admin"
_CLEARABLE_FIELDS = {"date_of_birth", "address", "gender"}


async def _get_or_404(users: UserStore, user_id: str) -> User:
    user = await users.get(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.get(
    "",
    response_model=ApiResponse[list[UserRead]],
    dependencies=[Depends(get_current_principal)],
)
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    users: UserStore = Depends(get_user_store),
) -> ApiResponse[list[UserRead]]:
    found = await users.list(skip=skip, limit=limit)
    return ApiResponse(
        message="Users fetched successfully",
        payload=[UserRead.model_validate(u) for u in found],
    )


@router.post("", response_model=ApiResponse[UserRead], status_code=201)
async def create_user(
    body: UserCreate,
    users: UserStore = Depends(get_user_store),
) -> ApiResponse[UserRead]:
    """Register a new account."""
    if await users.get_by_email(body.email) is not None:
        raise ConflictError("User already exists")

    user = await users.create(
        name=body.name,
        email=body.email,
        hashed_password=await asyncio.to_thread(get_password_hash, body.password),
        date_of_birth=body.date_of_birth,
        address=body.address,
        gender=body.gender,
    )
    logger.info("User %s registered", user.id)
    return ApiResponse(message="User created successfully", payload=UserRead.model_validate(user))


@router.get("/me", response_model=ApiResponse[UserRead])
async def read_current_user(
    current_user: User = Depends(get_current_user),
) -> ApiResponse[UserRead]:
    """Return profile of the currently authenticated user."""
    return ApiResponse(message="User fetched successfully", payload=UserRead.model_validate(current_user))


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserRead],
    dependencies=[Depends(get_current_principal)],
)
async def get_user(
    user_id: str,
    users: UserStore = Depends(get_user_store),
) -> ApiResponse[UserRead]:
    user = await _get_or_404(users, user_id)
    return ApiResponse(message="User fetched successfully", payload=UserRead.model_validate(user))


@router.put("/{user_id}", response_model=ApiResponse[UserRead])
async def update_user(
    user_id: str,
    body: UserUpdate,
    current_user: User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
) -> ApiResponse[UserRead]:
    is_admin = current_user.role == ADMIN_ROLE
    if current_user.id != user_id and not is_admin:
        raise ForbiddenError("You can only update your own account")

    changes = {
        field: value
        for field, value in body.model_dump(exclude_unset=True).items()
        if value is not None or field in _CLEARABLE_FIELDS
    }
    if "role" in changes and not is_admin:
        raise ForbiddenError("Only an Admin can change roles")
    if "email" in changes:
        other = await users.get_by_email(changes["email"])
        if other is not None and other.id != user_id:
            raise ConflictError("Email already registered")
    if "password" in changes:
        changes["hashed_password"] = await asyncio.to_thread(
            get_password_hash, changes.pop("password")
        )

    user = await users.update(user_id, **changes)
    if user is None:
        raise NotFoundError("User not found")
    logger.info("User %s updated by %s: %s", user_id, current_user.id, sorted(changes))
    return ApiResponse(message="User updated successfully", payload=UserRead.model_validate(user))


@router.delete(
    "/{user_id}",
    response_model=ApiResponse[UserRead],
    dependencies=[Depends(require_role("User")), Depends(require_permission("DELETE"))],
)
async def delete_user(
    user_id: str,
    users: UserStore = Depends(get_user_store),
) -> ApiResponse[UserRead]:
    user = await users.delete(user_id)
    if user is None:
        raise NotFoundError("User not found")
    logger.info("User %s deleted", user_id)
    return ApiResponse(message="User deleted successfully", payload=UserRead.model_validate(user))
