"""
Seed the fixed roles and the first admin account.

Runs on application startup and can be invoked on its own::

    python -m app.db.seed
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import get_password_hash
from app.crud.roles import RoleStore
from app.crud.users import UserStore
from app.db.base import Base
from app.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from app.models.catalog import Author, Book  # noqa: F401
from app.models.post import Post  # noqa: F401
from app.models.role import Role
from app.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_ROLES: dict[str, list[str]] = {
    "Admin": ["CREATE", "READ", "UPDATE", "DELETE"],
    "User": ["READ", "UPDATE"],
}


async def seed_roles(session: AsyncSession) -> list[str]:
    """Create any missing default role. Existing roles are left untouched."""
    existing = {role.name for role in await RoleStore(session).list()}
    created = []
    for name, permissions in DEFAULT_ROLES.items():
        if name in existing:
            continue
        session.add(Role(name=name, permissions=permissions))
        created.append(name)
    if created:
        await session.commit()
        logger.info("Seeded roles: %s", ", ".join(created))
    return created


async def seed_admin(session: AsyncSession) -> User | None:
    """Create the configured first admin, if configured and not yet present."""
    if not settings.FIRST_ADMIN_EMAIL:
        return None
    if not settings.FIRST_ADMIN_PASSWORD:
        logger.warning(
            "FIRST_ADMIN_EMAIL is set but FIRST_ADMIN_PASSWORD is not; "
            "skipping admin seeding for %s",
            settings.FIRST_ADMIN_EMAIL,
        )
        return None
    users = UserStore(session)
    if await users.get_by_email(settings.FIRST_ADMIN_EMAIL) is not None:
        return None
    admin = await users.create(
        name="System Administrator",
        email=settings.FIRST_ADMIN_EMAIL,
        hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
        role="Admin",
    )
    logger.info(
        "Default admin created: %s (password: <redacted>)",
        settings.FIRST_ADMIN_EMAIL,
    )
    return admin


async def seed_all() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session_factory() as session:
        await seed_roles(session)
        await seed_admin(session)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed_all())
