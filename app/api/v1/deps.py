"""
FastAPI dependencies: database session, stores and the auth chain.

A guarded route runs, in order:

* ``get_current_principal``: bearer token -> verified claims
* ``require_role(name)``: the principal's stored role must equal *name*
* ``require_permission(name)``: the principal's role document must list *name*

FastAPI caches each dependency per request, so chaining the checks
verifies the token once.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any, Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ForbiddenError, ServerError, UnauthenticatedError
from app.core.mail import SMTPMailer
from app.core.security import TokenError, TokenService, token_service
from app.crud.roles import RoleStore
from app.crud.users import UserStore
from app.db.session import async_session_factory
from app.models.user import User
from app.schemas.token import TokenPayload
from app.services.password_reset import Mailer, PasswordResetService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

# Raw header access so the literal "Bearer " prefix can be enforced
authorization_header = APIKeyHeader(
    name="Authorization",
    auto_error=False,
    description="`Bearer <token>` as returned by /users/login",
)


# ── Database session & stores ───────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_user_store(db: AsyncSession = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_role_store(db: AsyncSession = Depends(get_db)) -> RoleStore:
    return RoleStore(db)


def get_token_service() -> TokenService:
    return token_service


def get_mailer() -> Mailer:
    return SMTPMailer.from_settings(settings)


def get_password_reset_service(
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
    mailer: Mailer = Depends(get_mailer),
) -> PasswordResetService:
    link_base = f"{settings.BASE_URL.rstrip('/')}{settings.API_V1_PREFIX}/users/change-password"
    return PasswordResetService(users, tokens, mailer, link_base)


# ── Authentication ──────────────────────────────────────────────────
async def get_current_principal(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    tokens: TokenService = Depends(get_token_service),
) -> TokenPayload:
    """Verify the bearer token and attach its claims to ``request.state``."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise UnauthenticatedError("Token not found")

    token = authorization[len(BEARER_PREFIX):].strip()
    try:
        principal = tokens.verify(token)
    except TokenError as exc:
        logger.info("Rejected bearer token: %s", exc.reason)
        raise UnauthenticatedError("Invalid or expired token") from exc

    request.state.principal = principal
    return principal


async def get_current_user(
    principal: TokenPayload = Depends(get_current_principal),
    users: UserStore = Depends(get_user_store),
) -> User:
    """Load the acting user; a token for a deleted account is rejected."""
    user = await users.get(principal.sub)
    if user is None:
        raise UnauthenticatedError("User no longer exists")
    return user


# ── Authorization ───────────────────────────────────────────────────
def require_role(role: str) -> Callable[..., Awaitable[User]]:
    """Build a check that admits only users whose role is exactly *role*."""

    async def check_role(user: User = Depends(get_current_user)) -> User:
        if user.role != role:
            logger.info("User %s (role %s) denied: requires role %s", user.id, user.role, role)
            raise ForbiddenError("Access denied for this role")
        return user

    return check_role


def require_permission(permission: str) -> Callable[..., Awaitable[User]]:
    """Build a check that admits only users whose role grants *permission*."""

    async def check_permission(
        user: User = Depends(get_current_user),
        roles: RoleStore = Depends(get_role_store),
    ) -> User:
        role = await roles.get_by_name(user.role)
        if role is None:
            logger.error("User %s references unknown role %r", user.id, user.role)
            raise ServerError("Role not found")
        if not role.has_permission(permission):
            logger.info("User %s (role %s) denied: lacks %s", user.id, user.role, permission)
            raise ForbiddenError("No permission for this role")
        return user

    return check_permission


def admin_with(permission: str) -> list[Any]:
    """Route dependencies for Admin-only writes that also need *permission*."""
    return [Depends(require_role("Admin")), Depends(require_permission(permission))]
