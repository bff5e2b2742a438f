import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
    AsyncEngine,
)
from sqlalchemy.orm import declarative_base
from session_service.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

# Module-level lazy-initialized references
_async_engine: Optional[AsyncEngine] = None
_async_sessionmaker: Optional[async_sessionmaker] = None
_engine_lock = asyncio.Lock()


def _engine_options(url: str) -> dict:
    # sqlite drivers don't support pre-ping pooling
    if url.startswith("sqlite"):
        return {"future": True, "echo": False}
    return {"future": True, "echo": False, "pool_pre_ping": True}


async def _init_engine_and_sessionmaker() -> None:
    global _async_engine, _async_sessionmaker
    if _async_engine is None:
        # Protect against race condition when called concurrently
        async with _engine_lock:
            if _async_engine is None:
                if not settings.DATABASE_URL:
                    raise RuntimeError(
                        "DATABASE_URL is not set. Set it in your environment or .env"
                    )
                _async_engine = create_async_engine(
                    settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL)
                )
                _async_sessionmaker = async_sessionmaker(
                    bind=_async_engine, class_=AsyncSession, expire_on_commit=False
                )
                logger.info("Database engine initialised")


async def get_engine() -> AsyncEngine:
    await _init_engine_and_sessionmaker()
    assert _async_engine is not None
    return _async_engine


async def get_sessionmaker() -> async_sessionmaker:
    await _init_engine_and_sessionmaker()
    assert _async_sessionmaker is not None
    return _async_sessionmaker


# FastAPI dependency: yields a fresh AsyncSession
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    sm = await get_sessionmaker()
    async with sm() as session:
        yield session


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Standalone session for scripts and periodic jobs."""
    sm = await get_sessionmaker()
    async with sm() as session:
        yield session


async def create_all():
    engine = await get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_all():
    engine = await get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine():
    global _async_engine, _async_sessionmaker
    if _async_engine is not None:
        await _async_engine.dispose()
        _async_engine = None
        _async_sessionmaker = None
        logger.info("Database engine disposed")
