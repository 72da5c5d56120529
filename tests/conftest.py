"""Test fixtures for manualic-api."""

import os
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from manualic_api.auth import get_current_user
from manualic_api.db import get_db
from manualic_api.main import app
from manualic_api.models import (
    Base,
    Block,
    BlockType,
    Category,
    Document,
    User,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
)

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def get_alembic_config(connection_url: str | None = None) -> Config:
    """Get alembic config for running migrations."""
    base_path = Path(__file__).parent.parent
    alembic_cfg = Config(str(base_path / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(base_path / "migrations"))
    if connection_url:
        alembic_cfg.set_main_option("sqlalchemy.url", connection_url)
    return alembic_cfg


@pytest.fixture
async def async_engine():
    """Create a test database engine with schema initialized.

    For SQLite tests, we use Base.metadata.create_all(); alembic migrations
    are exercised against PostgreSQL by the pg_engine fixture.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(async_engine, expire_on_commit=False)
    async with async_session_maker() as session:
        yield session


# --- Seed data ---


@dataclass
class Manual:
    """A workspace owner with one category and one document."""

    owner: User
    workspace: Workspace
    category: Category
    document: Document


async def create_user(session: AsyncSession, email: str) -> User:
    user = User(email=email, display_name=email.split("@")[0].title())
    session.add(user)
    await session.commit()
    return user


async def add_member(
    session: AsyncSession,
    workspace: Workspace,
    role: WorkspaceRole,
    email: str | None = None,
) -> User:
    """Create a user and give them ``role`` in ``workspace``."""
    user = await create_user(session, email or f"{role.value}@example.com")
    session.add(
        WorkspaceMember(workspace_id=workspace.id, user_id=user.id, role=role)
    )
    await session.commit()
    return user


@pytest.fixture
async def manual(async_session: AsyncSession) -> Manual:
    """Seed an owner, workspace, category and a document with blocks [text:"A"]."""
    owner = await create_user(async_session, "owner@example.com")

    workspace = Workspace(name="Operations", owner_id=owner.id)
    async_session.add(workspace)
    await async_session.flush()

    category = Category(workspace_id=workspace.id, name="Onboarding", sort_order=1)
    async_session.add(category)
    await async_session.flush()

    document = Document(
        category_id=category.id, title="First day", created_by_id=owner.id
    )
    async_session.add(document)
    await async_session.flush()

    async_session.add(
        Block(
            document_id=document.id,
            block_type=BlockType.TEXT,
            content="A",
            sort_order=1,
        )
    )
    await async_session.commit()

    return Manual(
        owner=owner, workspace=workspace, category=category, document=document
    )


# --- HTTP clients ---


@pytest.fixture
async def client(async_engine) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with isolated database."""
    async_session_maker = async_sessionmaker(async_engine, expire_on_commit=False)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def login_as(client: AsyncClient) -> Callable[[User], AsyncClient]:
    """Make ``client`` act as the given user (bypasses token validation)."""

    def _login(user: User) -> AsyncClient:
        async def override_get_current_user() -> User:
            return user

        app.dependency_overrides[get_current_user] = override_get_current_user
        return client

    return _login


# PostgreSQL test fixtures for integration testing with real migrations


@pytest.fixture
async def pg_engine():
    """Create a PostgreSQL test database engine with migrations applied.

    This fixture requires a PostgreSQL database URL to be set via the
    MANUALIC_API_TEST_DATABASE_URL environment variable.

    Usage:
        MANUALIC_API_TEST_DATABASE_URL=postgresql+asyncpg://... pytest -m integration
    """
    pg_url = os.environ.get("MANUALIC_API_TEST_DATABASE_URL")
    if not pg_url:
        pytest.skip("PostgreSQL test database URL not configured")

    engine = create_async_engine(pg_url, echo=False)

    sync_url = pg_url.replace("+asyncpg", "")
    alembic_cfg = get_alembic_config(sync_url)
    command.upgrade(alembic_cfg, "head")

    yield engine

    command.downgrade(alembic_cfg, "base")
    await engine.dispose()
