import json
from datetime import timedelta
from typing import Any, Dict, Optional
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from session_service.cache.base import CacheError, SessionCache
from session_service.models.cache_entry_model import CacheEntry
from session_service.utils.timeutils import as_utc, utc_now


class DatabaseSessionCache(SessionCache):
    """
    Cache rows kept in the ``cache_entries`` table.

    Uses its own sessionmaker so cache statements never share a transaction
    with the request's session.
    """

    backend_name = "database"

    def __init__(self, sessionmaker: async_sessionmaker, namespace: str = "session"):
        super().__init__(namespace)
        self.sessionmaker = sessionmaker

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        full_key = self._key(key)
        try:
            async with self.sessionmaker() as db:
                entry = await db.get(CacheEntry, full_key)
                if entry is None:
                    return None
                expires_at = as_utc(entry.expires_at)
                if expires_at is not None and expires_at <= utc_now():
                    await db.delete(entry)
                    await db.commit()
                    return None
                value = entry.value
        except SQLAlchemyError as e:
            raise CacheError(f"cache table read failed: {e}") from e
        try:
            return json.loads(value)
        except ValueError as e:
            raise CacheError(f"undecodable value at {full_key}: {e}") from e

    async def set(self, key: str, value: Dict[str, Any], ttl: Optional[float] = None) -> None:
        if ttl is not None and ttl <= 0:
            await self.delete(key)
            return
        expires_at = utc_now() + timedelta(seconds=ttl) if ttl is not None else None
        try:
            async with self.sessionmaker() as db:
                await db.merge(
                    CacheEntry(key=self._key(key), value=json.dumps(value), expires_at=expires_at)
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"cache table write failed: {e}") from e

    async def delete(self, key: str) -> None:
        await self._execute_delete(delete(CacheEntry).where(CacheEntry.key == self._key(key)))

    async def clear(self) -> None:
        await self._execute_delete(
            delete(CacheEntry).where(CacheEntry.key.like(f"{self.namespace}:%"))
        )

    async def purge_expired(self) -> int:
        """Drop rows whose TTL has passed; returns how many were removed."""
        try:
            async with self.sessionmaker() as db:
                result = await db.execute(
                    select(CacheEntry.key).where(
                        CacheEntry.expires_at.is_not(None), CacheEntry.expires_at <= utc_now()
                    )
                )
                keys = list(result.scalars().all())
                if keys:
                    await db.execute(delete(CacheEntry).where(CacheEntry.key.in_(keys)))
                    await db.commit()
                return len(keys)
        except SQLAlchemyError as e:
            raise CacheError(f"cache table purge failed: {e}") from e

    async def _execute_delete(self, stmt) -> None:
        try:
            async with self.sessionmaker() as db:
                await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"cache table delete failed: {e}") from e
