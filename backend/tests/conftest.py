"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time; configure them before importing shelf.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-the-shelf-test-suite-0123456789")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("APP_BASE_URL", "http://shelf.test")
os.environ.setdefault("EMAIL_DRY_RUN", "true")

import re
from dataclasses import dataclass
from typing import AsyncGenerator, Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shelf.core.database import Base, get_db
from shelf.core.security import create_access_token
from shelf.main import app
from shelf.models.user import Household, User, UserRole
from shelf.services.email_service import EmailService, get_email_service
from shelf.services.rate_limit_service import get_rate_limit_service
from shelf.utils.datetime_utils import utc_now

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

_TOKEN_RE = re.compile(r"token=([A-Za-z0-9_\-]+)")


@dataclass
class SentEmail:
    to: str
    subject: str
    text: str

    def token(self, path: str) -> str:
        """Token from the link to *path* in the plain-text body."""
        for line in self.text.splitlines():
            if path in line:
                match = _TOKEN_RE.search(line)
                if match:
                    return match.group(1)
        raise AssertionError(f"No {path} link in email: {self.text!r}")


class RecordingEmailService(EmailService):
    """EmailService that keeps messages in memory instead of talking SMTP."""

    def __init__(self, app_base_url: Optional[str] = "http://shelf.test"):
        super().__init__(
            smtp_host="smtp.shelf.test",
            smtp_port=587,
            smtp_username=None,
            smtp_password=None,
            from_email="noreply@shelf.test",
            from_name="Shelf",
            use_tls=True,
            app_base_url=app_base_url,
        )
        self.sent: list[SentEmail] = []
        self.fail_with: Optional[Exception] = None

    async def send_email(self, to_email, subject, html_body, text_body) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(SentEmail(to=to_email, subject=subject, text=text_body))

    def last_to(self, email: str) -> SentEmail:
        for message in reversed(self.sent):
            if message.to == email:
                return message
        raise AssertionError(f"No email sent to {email}")


class NoopRateLimiter:
    async def check_rate_limit(self, *args, **kwargs) -> None:
        return None


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine with every table."""
    import shelf.models  # noqa: F401

    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mailer() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def mailer_without_base_url() -> RecordingEmailService:
    return RecordingEmailService(app_base_url=None)


@pytest_asyncio.fixture(scope="function")
async def async_client(db_session, mailer) -> AsyncGenerator[AsyncClient, None]:
    """Async test client sharing the test session and mailer."""

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_email_service] = lambda: mailer
    app.dependency_overrides[get_rate_limit_service] = lambda: NoopRateLimiter()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------


async def _create_user(
    db: AsyncSession,
    email: str,
    role: Optional[UserRole] = None,
    household_id: Optional[UUID] = None,
    display_name: Optional[str] = None,
    verified: bool = False,
) -> User:
    user = User(
        id=uuid4(),
        email=email,
        display_name=display_name,
        role=role,
        household_id=household_id,
        email_verified_at=utc_now() if verified else None,
    )
    db.add(user)
    await db.commit()
    return user


async def _create_owner_with_household(
    db: AsyncSession, email: str = "owner@example.com", verified: bool = True
) -> User:
    owner_id = uuid4()
    household = Household(id=uuid4(), name="Household", owner_id=owner_id)
    db.add(household)
    owner = User(
        id=owner_id,
        email=email,
        display_name="Olive Owner",
        role=UserRole.OWNER,
        household_id=household.id,
        email_verified_at=utc_now() if verified else None,
    )
    db.add(owner)
    await db.commit()
    return owner


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory: ``await make_user(email, role=..., household_id=..., verified=...)``."""

    async def _make(email: str, **kwargs) -> User:
        return await _create_user(db_session, email, **kwargs)

    return _make


@pytest.fixture
def make_owner(db_session: AsyncSession):
    """Factory for an owner together with their household."""

    async def _make(email: str = "owner@example.com", verified: bool = True) -> User:
        return await _create_owner_with_household(db_session, email, verified)

    return _make


@pytest.fixture
def auth_headers():
    """Factory: bearer headers for a user."""

    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(data={"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> User:
    """Verified owner of a fresh household."""
    return await _create_owner_with_household(db_session)


@pytest_asyncio.fixture
async def member(db_session: AsyncSession, owner: User) -> User:
    """Verified member of the owner's household."""
    return await _create_user(
        db_session,
        "member@example.com",
        role=UserRole.MEMBER,
        household_id=owner.household_id,
        display_name="Milo Member",
        verified=True,
    )


@pytest_asyncio.fixture
async def unassigned_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "newbie@example.com")
