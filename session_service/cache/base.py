import abc
from typing import Any, Dict, Optional


class CacheError(Exception):
    """Raised by a cache backend when the underlying store is unavailable."""


class SessionCache(abc.ABC):
    """
    Key-value mirror for session records.

    Values are JSON-compatible dicts and ``ttl`` is in seconds. Keys passed in
    are bare session tokens; backends prefix them with their namespace.
    """

    backend_name = "abstract"

    def __init__(self, namespace: str = "session"):
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def set(self, key: str, value: Dict[str, Any], ttl: Optional[float] = None) -> None:
        ...

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abc.abstractmethod
    async def clear(self) -> None:
        ...

    async def close(self) -> None:
        return None
