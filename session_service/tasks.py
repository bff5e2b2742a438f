"""
Periodic maintenance entry point.

Run from cron or any external scheduler::

    python -m session_service.tasks
"""
import asyncio
import logging
from session_service.cache import CacheError, DatabaseSessionCache
from session_service.config import settings
from session_service.db import dispose_engine, get_sessionmaker, session_scope
from session_service.services.session_service import SessionManager, build_session_manager

logger = logging.getLogger(__name__)


async def sweep_expired_sessions(manager: SessionManager) -> int:
    async with session_scope() as db:
        swept = await manager.sweep_expired(db)

    # the relational cache backend has no native TTL eviction
    if isinstance(manager.cache, DatabaseSessionCache):
        try:
            purged = await manager.cache.purge_expired()
        except CacheError as e:
            logger.warning("Cache purge failed: %s", e)
        else:
            logger.info("Purged %d expired cache rows", purged)
    return swept


async def main() -> int:
    manager = build_session_manager(settings, sessionmaker=await get_sessionmaker())
    try:
        return await sweep_expired_sessions(manager)
    finally:
        await manager.close()
        await dispose_engine()


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    count = asyncio.run(main())
    logger.info("Swept %d expired sessions", count)
