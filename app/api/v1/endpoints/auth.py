"""
Auth endpoints: login, forgot-password and change-password (reset link).
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.api.v1.deps import (get_password_reset_service, get_token_service,
                             get_user_store)
from app.core.config import settings
from app.core.exceptions import UnauthenticatedError
from app.core.security import TokenService, verify_password
from app.crud.users import UserStore
from app.schemas.common import ApiResponse, MessageResponse
from app.schemas.token import LoginRequest, LoginResult
from app.schemas.user import (ChangePasswordRequest, ForgotPasswordRequest,
                              UserSummary)
from app.services.password_reset import PasswordResetService

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/users", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=ApiResponse[LoginResult])
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
) -> ApiResponse[LoginResult]:
    """Exchange email + password for a bearer token."""
    user = await users.get_by_email(body.email.strip())
    if user is None or not await asyncio.to_thread(
        verify_password, body.password, user.hashed_password
    ):
        raise UnauthenticatedError("Invalid credentials")

    token = tokens.issue_access_token(user.id)
    logger.info("User %s logged in", user.id)
    return ApiResponse(
        message="User logged in successfully",
        payload=LoginResult(data=UserSummary.model_validate(user), token=token),
    )


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(settings.RESET_RATE_LIMIT)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    """Mail a single-use password reset link."""
    await service.request_reset(body.email)
    return MessageResponse(message="Password reset link sent successfully")


@router.post("/change-password/{token}", response_model=MessageResponse)
async def change_password(
    token: str,
    body: ChangePasswordRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    """Set a new password using the token from the reset link."""
    await service.change_password(token, body.new_password, body.confirm_password)
    return MessageResponse(message="Password reset successfully")
