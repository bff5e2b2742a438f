from datetime import timedelta
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)
from session_service.cache import MemorySessionCache
from session_service.db import Base, get_db
from session_service.main import app
from session_service.models.user_model import UserRole
from session_service.schemas.user_schema import UserCreate
from session_service.services.session_service import SessionManager
from session_service.services.user_service import UserService


CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"
)


# =====================================================================
# TEST DATABASE – a fresh sqlite file per test
# =====================================================================

@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def sessionmaker(test_engine):
    return async_sessionmaker(
        bind=test_engine,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# =====================================================================
# SESSION MANAGER WITH AN INJECTED IN-MEMORY CACHE
# =====================================================================

@pytest.fixture
def cache():
    return MemorySessionCache()


@pytest.fixture
def manager(cache):
    return SessionManager(cache, lifetime=timedelta(days=30))


# =====================================================================
# ASYNC HTTP CLIENT
# =====================================================================

@pytest.fixture
async def async_client(sessionmaker, manager):
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.session_manager = manager

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://testserver"
    ) as client:
        yield client

    app.dependency_overrides.pop(get_db, None)
    app.state.session_manager = None


# =====================================================================
# USERS
# =====================================================================

@pytest.fixture
def user_factory(db_session):
    """
    Creates real users in the DB.
    Usage:
        user = await user_factory(email="x@test.com", role=UserRole.ADMIN)
    """
    async def _create(
        email: str = "student@test.com",
        password: str = "strongpass123",
        name: str = "Test Student",
        role: UserRole = UserRole.STUDENT,
    ):
        user_in = UserCreate(name=name, email=email, password=password)
        return await UserService.create_user(db_session, user_in, role=role)
    return _create


@pytest.fixture
async def test_user(user_factory):
    return await user_factory()
