import logging
from typing import Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
from session_service.cache.base import CacheError, SessionCache
from session_service.cache.database import DatabaseSessionCache
from session_service.cache.memory import MemorySessionCache
from session_service.cache.redis_cache import RedisSessionCache
from session_service.config import CacheBackend, CacheConfig

logger = logging.getLogger(__name__)


def build_cache(
    config: CacheConfig, sessionmaker: Optional[async_sessionmaker] = None
) -> SessionCache:
    """Instantiate the backend chosen by ``config``. Called once at startup."""
    if config.backend is CacheBackend.REDIS:
        logger.info("Using Redis for session cache")
        return RedisSessionCache.from_url(config.redis_url, namespace=config.namespace)

    if config.backend is CacheBackend.DATABASE:
        if sessionmaker is None:
            raise RuntimeError("database cache backend needs a sessionmaker")
        logger.info("Using the relational store for session cache")
        return DatabaseSessionCache(sessionmaker, namespace=config.namespace)

    logger.info("Using in-memory session cache")
    return MemorySessionCache(namespace=config.namespace)


__all__ = [
    "CacheError",
    "SessionCache",
    "MemorySessionCache",
    "RedisSessionCache",
    "DatabaseSessionCache",
    "build_cache",
]
