"""
Credential store: persistence for user records.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User


class UserStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: str) -> User | None:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def consume_reset_token(
        self,
        user_id: str,
        token: str,
        now: datetime,
        hashed_password: str,
    ) -> bool:
        """Swap in *hashed_password* and clear the reset fields in one statement.

        Matches only while *token* is the user's current, unexpired reset
        token, so of two racing calls at most one updates a row.
        """
        result = await self.session.execute(
            update(User)
            .where(
                User.id == user_id,
                User.reset_token == token,
                User.reset_token_expires_at > now,
            )
            .values(
                hashed_password=hashed_password,
                reset_token=None,
                reset_token_expires_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount == 1

    async def list(self, skip: int = 0, limit: int = 100) -> list[User]:
        result = await self.session.execute(
            select(User).order_by(User.created_at).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def create(self, **fields: Any) -> User:
        user = User(**fields)
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def update(self, user_id: str, **fields: Any) -> User | None:
        user = await self.get(user_id)
        if user is None:
            return None
        for field, value in fields.items():
            setattr(user, field, value)
        return await self.save(user)

    async def save(self, user: User) -> User:
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def delete(self, user_id: str) -> User | None:
        user = await self.get(user_id)
        if user is None:
            return None
        await self.session.delete(user)
        await self.session.commit()
        return user
