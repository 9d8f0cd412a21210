"""
Pytest configuration and fixtures for Sand Rocket tests.
"""

from dataclasses import dataclass

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

from sandrocket.main import app
from sandrocket.auth import hash_password
from sandrocket.config import get_settings
from sandrocket.database import create_engine, get_session
from sandrocket.models import Epic, Project, ProjectMember, ProjectRole, User
from sandrocket.services.locks import partition_locks


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point uploads at a temp dir and restore limits after each test."""
    settings = get_settings()
    monkeypatch.setattr(settings, "upload_dir", tmp_path / "uploads")
    monkeypatch.setattr(settings, "allow_cross_epic_moves", True)
    for limit in ("max_file_size_mb", "max_project_storage_mb"):
        monkeypatch.setattr(settings, limit, getattr(settings, limit))
    return settings


@pytest.fixture(autouse=True)
def fresh_partition_locks():
    """asyncio locks are bound to the loop that first awaits them."""
    partition_locks.clear()
    yield
    partition_locks.clear()


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a test database engine on a per-test SQLite file."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(session_maker):
    """Create a test database session."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_maker):
    """Create an async test client with test database."""

    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def other_client(client):
    """A second browser, for a second user. Shares the database override."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register(ac: AsyncClient, email: str, display_name: str, password: str = "password123") -> dict:
    """Register through the API; the client keeps the session cookie."""
    response = await ac.post(
        "/api/auth/register",
        json={"email": email, "password": password, "display_name": display_name},
    )
    assert response.status_code == 201, response.text
    return response.json()["user"]


@dataclass
class Board:
    """Rows a core test needs: one user, two projects, three epics."""
    user: User
    project: Project
    epic: Epic
    sibling_epic: Epic
    foreign_epic: Epic


@pytest_asyncio.fixture(scope="function")
async def board(test_session) -> Board:
    """
    A user owning two projects.

    `epic` and `sibling_epic` share a project; `foreign_epic` lives in the
    other one.
    """
    user = User(email="ada@example.com", password_hash=hash_password("password123"), display_name="Ada")
    test_session.add(user)
    await test_session.flush()

    project = Project(owner_user_id=user.id, name="Rocket")
    other_project = Project(owner_user_id=user.id, name="Other")
    test_session.add_all([project, other_project])
    await test_session.flush()

    test_session.add_all([
        ProjectMember(project_id=project.id, user_id=user.id, role=ProjectRole.owner),
        ProjectMember(project_id=other_project.id, user_id=user.id, role=ProjectRole.owner),
    ])
    epic = Epic(project_id=project.id, name="Launch")
    sibling_epic = Epic(project_id=project.id, name="Landing")
    foreign_epic = Epic(project_id=other_project.id, name="Elsewhere")
    test_session.add_all([epic, sibling_epic, foreign_epic])
    await test_session.commit()

    return Board(user, project, epic, sibling_epic, foreign_epic)


@pytest.fixture
def register_user():
    return register
