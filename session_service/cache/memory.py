import json
import time
from typing import Any, Dict, Optional, Tuple
from session_service.cache.base import CacheError, SessionCache


class MemorySessionCache(SessionCache):
    """Process-local cache. Only suitable for a single worker or tests."""

    backend_name = "memory"

    def __init__(self, namespace: str = "session"):
        super().__init__(namespace)
        # key -> (json payload, monotonic deadline or None)
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        full_key = self._key(key)
        entry = self._entries.get(full_key)
        if entry is None:
            return None
        payload, deadline = entry
        if deadline is not None and deadline <= time.monotonic():
            self._entries.pop(full_key, None)
            return None
        try:
            return json.loads(payload)
        except ValueError as e:
            raise CacheError(f"undecodable value at {full_key}: {e}") from e

    async def set(self, key: str, value: Dict[str, Any], ttl: Optional[float] = None) -> None:
        if ttl is not None and ttl <= 0:
            await self.delete(key)
            return
        deadline = time.monotonic() + ttl if ttl is not None else None
        self._entries[self._key(key)] = (json.dumps(value), deadline)

    async def delete(self, key: str) -> None:
        self._entries.pop(self._key(key), None)

    async def clear(self) -> None:
        prefix = f"{self.namespace}:"
        for key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
