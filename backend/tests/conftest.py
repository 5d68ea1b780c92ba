"""Shared test fixtures for the Engine Board backend tests."""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings
from app.db.models import Base, Course, User


# Use an in-memory SQLite database for tests.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionFactory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@event.listens_for(engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _register_jsonb_for_sqlite():
    """Register a compilation rule so JSONB compiles to JSON on SQLite."""
    from sqlalchemy.dialects.postgresql import JSONB
    from sqlalchemy.ext.compiler import compiles

    @compiles(JSONB, "sqlite")
    def _compile_jsonb_sqlite(element, compiler, **kw):
        return "JSON"


_register_jsonb_for_sqlite()


@pytest.fixture(autouse=True)
def _no_side_channels(monkeypatch):
    """Keep tests off Redis, Resend and the rate limiter's shared counters."""
    from app.middleware.rate_limiter import limiter

    monkeypatch.setattr(settings, "plan_broadcast_enabled", False)
    monkeypatch.setattr(settings, "resend_api_key", "")
    monkeypatch.setattr(limiter, "enabled", False)


@pytest_asyncio.fixture
async def db() -> AsyncSession:
    """Create tables and yield a fresh async session for each test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionFactory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _make_user(db: AsyncSession, email: str, name: str) -> User:
    user = User(id=str(uuid.uuid4()), email=email, name=name)
    db.add(user)
    await db.flush()
    return user


@pytest_asyncio.fixture
async def test_user(db: AsyncSession) -> User:
    """Create and return a test user."""
    return await _make_user(db, "test@example.com", "Test User")


@pytest_asyncio.fixture
async def other_user(db: AsyncSession) -> User:
    return await _make_user(db, "friend@example.com", "Friend User")


@pytest_asyncio.fixture
async def test_course(db: AsyncSession, test_user: User) -> Course:
    """A course with three syllabus topics owned by ``test_user``."""
    course = Course(
        id=str(uuid.uuid4()),
        user_id=test_user.id,
        name="Thermodynamics",
        code="ME201",
        syllabus=[
            {"topic": "Laws", "completed": False},
            {"topic": "Cycles", "completed": False},
            {"topic": "Entropy", "completed": False},
        ],
    )
    db.add(course)
    await db.flush()
    return course


@pytest.fixture
def auth_headers():
    """Build Bearer headers for a user."""
    from app.api.dependencies import create_access_token

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}

    return _headers


@pytest_asyncio.fixture
async def client(db: AsyncSession):
    """HTTP client against the app, sharing the test session."""
    from app.api.dependencies import get_db
    from app.main import app

    async def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
