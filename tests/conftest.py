"""
Shared test fixtures for the Bookshelf API test suite.

Each test gets its own in-memory aiosqlite database seeded with the
default roles.
"""

import os
import sys
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["BASE_URL"] = "http://test"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.deps import get_db, get_mailer
from app.core.mail import MailDeliveryError
from app.core.security import get_password_hash, token_service
from app.crud.users import UserStore
from app.db.base import Base
from app.db.seed import seed_roles
from app.main import app
from app.models.user import User

DEFAULT_PASSWORD = "Password123!"


class RecordingMailer:
    """Stands in for SMTP; keeps every message, or fails on demand."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    async def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise MailDeliveryError("SMTP unavailable")
        self.sent.append((to, subject, body))


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        await seed_roles(session)
        yield session


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
async def async_client(
    session_factory, db_session, mailer
) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Helpers ─────────────────────────────────────────────────────────
@pytest.fixture
def make_user(db_session):
    """Factory fixture: persist a user with a hashed password."""

    async def _make(
        email: str = "user@example.com",
        password: str = DEFAULT_PASSWORD,
        role: str = "User",
        name: str = "Test User",
    ) -> User:
        return await UserStore(db_session).create(
            name=name,
            email=email,
            hashed_password=get_password_hash(password),
            role=role,
        )

    return _make


@pytest.fixture
def auth_headers():
    """Factory fixture: Authorization header carrying a fresh access token."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_service.issue_access_token(user.id)}"}

    return _headers


@pytest.fixture
async def user(make_user) -> User:
    return await make_user()


@pytest.fixture
async def admin(make_user) -> User:
    return await make_user(email="admin@example.com", role="Admin", name="Admin")
