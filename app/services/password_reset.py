"""
Password reset: request a link by email, then consume it exactly once.

A reset token is honoured only when all three hold:

1. the JWT signature and ``exp`` claim verify (purpose ``reset``);
2. it equals the ``reset_token`` stored on the user named by ``sub``;
3. the stored ``reset_token_expires_at`` is still in the future.

Checks 2 and 3 are the WHERE clause of the single UPDATE that writes the
new hash and clears both stored fields, so replaying the token, even
concurrently, fails check 2.  A newer request overwrites the stored
token, which retires the older one.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Protocol

from app.core.exceptions import (InputValidationError,
                                 InvalidOrExpiredTokenError, NotFoundError,
                                 ServerError)
from app.core.mail import MailDeliveryError
from app.core.security import RESET_TOKEN, TokenError, TokenService, get_password_hash
from app.crud.users import UserStore

logger = logging.getLogger(__name__)

RESET_SUBJECT = "RESET PASSWORD"


class Mailer(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None: ...


class PasswordResetService:
    def __init__(
        self,
        users: UserStore,
        tokens: TokenService,
        mailer: Mailer,
        link_base: str,
    ) -> None:
        self.users = users
        self.tokens = tokens
        self.mailer = mailer
        self.link_base = link_base.rstrip("/")

    def reset_link(self, token: str) -> str:
        return f"{self.link_base}/{token}"

    async def request_reset(self, email: str) -> None:
        """Store a fresh reset token for *email* and mail the link."""
        user = await self.users.get_by_email(email)
        if user is None:
            raise NotFoundError("User not found")

        token = self.tokens.issue_reset_token(user.id)
        user.reset_token = token
        user.reset_token_expires_at = datetime.now(timezone.utc) + self.tokens.config.reset_ttl
        await self.users.save(user)

        body = f"Please click on the link to reset your password {self.reset_link(token)}"
        try:
            await self.mailer.send(user.email, RESET_SUBJECT, body)
        except MailDeliveryError as exc:
            raise ServerError("Could not send the password reset email") from exc
        logger.info("Password reset requested for user %s", user.id)

    async def change_password(
        self,
        token: str,
        new_password: str,
        confirm_password: str,
    ) -> None:
        if new_password != confirm_password:
            raise InputValidationError("Passwords do not match")

        try:
            claims = self.tokens.verify(token, RESET_TOKEN)
        except TokenError as exc:
            logger.info("Rejected reset token: %s", exc.reason)
            raise InvalidOrExpiredTokenError() from exc

        new_hash = await asyncio.to_thread(get_password_hash, new_password)
        consumed = await self.users.consume_reset_token(
            claims.sub, token, datetime.now(timezone.utc), new_hash
        )
        if not consumed:
            logger.info("Reset token for user %s is stale or already used", claims.sub)
            raise InvalidOrExpiredTokenError()
        logger.info("Password reset completed for user %s", claims.sub)
