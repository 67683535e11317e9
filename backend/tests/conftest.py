"""Shared fixtures: an in-memory SQLite database per test and an HTTP client."""

from collections.abc import AsyncGenerator, Awaitable, Callable

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from teamsync.config import Settings
from teamsync.db.session import Database
from teamsync.main import create_app
from teamsync.models.project import Project
from teamsync.models.user import User
from teamsync.services.projects import ProjectService

MakeUser = Callable[..., Awaitable[User]]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        environment="test",
        log_level="WARNING",
        jwt_secret_key="test-secret",
        bcrypt_rounds=4,
        upload_dir=tmp_path / "uploads",
        avatar_max_bytes=1024,
    )


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database.from_settings(settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def make_user(session: AsyncSession) -> MakeUser:
    """Insert a user directly, skipping password hashing."""

    async def _make(name: str, email: str | None = None) -> User:
        user = User(name=name, email=email or f"{name.lower()}@example.com")
        session.add(user)
        await session.commit()
        return user

    return _make


@pytest.fixture
async def owner(make_user: MakeUser) -> User:
    return await make_user("Alice")


@pytest.fixture
async def project(session: AsyncSession, owner: User) -> Project:
    return await ProjectService(session).create_project(owner, "Launch", "Product launch")


@pytest.fixture
async def client(settings: Settings, database: Database) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = create_app(settings=settings, database=database)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
