import json
import logging
from typing import Any, Dict, Optional
from redis import asyncio as redis_async
from redis.exceptions import RedisError
from session_service.cache.base import CacheError, SessionCache

logger = logging.getLogger(__name__)


class RedisSessionCache(SessionCache):
    backend_name = "redis"

    def __init__(self, client: redis_async.Redis, namespace: str = "session"):
        super().__init__(namespace)
        self.client = client

    @classmethod
    def from_url(cls, url: str, namespace: str = "session") -> "RedisSessionCache":
        client = redis_async.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=1,
            health_check_interval=30,
        )
        return cls(client, namespace=namespace)

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = await self.client.get(self._key(key))
        except RedisError as e:
            raise CacheError(f"redis get failed: {e}") from e
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise CacheError(f"undecodable value at {self._key(key)}: {e}") from e

    async def set(self, key: str, value: Dict[str, Any], ttl: Optional[float] = None) -> None:
        if ttl is not None and ttl <= 0:
            await self.delete(key)
            return
        try:
            # millisecond precision so sub-second remainders are not rounded to zero
            px = int(ttl * 1000) if ttl is not None else None
            await self.client.set(self._key(key), json.dumps(value), px=px)
        except RedisError as e:
            raise CacheError(f"redis set failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(self._key(key))
        except RedisError as e:
            raise CacheError(f"redis delete failed: {e}") from e

    async def clear(self) -> None:
        try:
            keys = [k async for k in self.client.scan_iter(match=f"{self.namespace}:*")]
            if keys:
                await self.client.delete(*keys)
        except RedisError as e:
            raise CacheError(f"redis clear failed: {e}") from e

    async def close(self) -> None:
        try:
            await self.client.aclose()
        except RedisError as e:
            logger.warning("Error closing redis client: %s", e)
