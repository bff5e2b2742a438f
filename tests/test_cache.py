import asyncio
import pytest
import fakeredis
from session_service.cache import (
    CacheError,
    DatabaseSessionCache,
    MemorySessionCache,
    RedisSessionCache,
    build_cache,
)
from session_service.config import CacheBackend, Settings
from session_service.models.cache_entry_model import CacheEntry


PAYLOAD = {"session_token": "tok", "user_id": "u1", "is_active": True}


def _settings(**overrides):
    values = {"DATABASE_URL": None, "REDIS_URL": None, "CACHE_BACKEND": CacheBackend.AUTO}
    values.update(overrides)
    return Settings(_env_file=None, **values)


# -------------------------------------------------------------------
# BACKEND SELECTION
# -------------------------------------------------------------------

class TestBackendSelection:

    def test_redis_preferred_when_configured(self):
        config = _settings(
            REDIS_URL="redis://localhost:6379/0",
            DATABASE_URL="postgresql+asyncpg://u:p@localhost/academy",
        ).cache_config()
        assert config.backend is CacheBackend.REDIS

    def test_database_used_without_redis(self):
        config = _settings(DATABASE_URL="postgresql+asyncpg://u:p@localhost/academy").cache_config()
        assert config.backend is CacheBackend.DATABASE

    def test_memory_as_last_resort(self):
        assert _settings().cache_config().backend is CacheBackend.MEMORY

    def test_explicit_backend_overrides_auto(self):
        config = _settings(
            REDIS_URL="redis://localhost:6379/0", CACHE_BACKEND=CacheBackend.MEMORY
        ).cache_config()
        assert config.backend is CacheBackend.MEMORY

    def test_explicit_redis_without_url_is_rejected(self):
        with pytest.raises(RuntimeError):
            _settings(CACHE_BACKEND=CacheBackend.REDIS).cache_config()

    @pytest.mark.asyncio
    async def test_build_cache_instantiates_backend(self, sessionmaker):
        assert isinstance(build_cache(_settings().cache_config()), MemorySessionCache)

        redis_cache = build_cache(_settings(REDIS_URL="redis://localhost:6379/0").cache_config())
        assert isinstance(redis_cache, RedisSessionCache)

        db_config = _settings(DATABASE_URL="sqlite+aiosqlite:///x.db").cache_config()
        assert isinstance(build_cache(db_config, sessionmaker=sessionmaker), DatabaseSessionCache)
        with pytest.raises(RuntimeError):
            build_cache(db_config)


# -------------------------------------------------------------------
# IN-MEMORY
# -------------------------------------------------------------------

class TestMemoryCache:

    @pytest.mark.asyncio
    async def test_set_get_delete(self):
        cache = MemorySessionCache()
        await cache.set("tok", PAYLOAD, ttl=60)
        assert await cache.get("tok") == PAYLOAD

        await cache.delete("tok")
        assert await cache.get("tok") is None
        # deleting twice is harmless
        await cache.delete("tok")

    @pytest.mark.asyncio
    async def test_returned_value_is_a_copy(self):
        cache = MemorySessionCache()
        await cache.set("tok", PAYLOAD, ttl=60)
        value = await cache.get("tok")
        value["is_active"] = False
        assert (await cache.get("tok"))["is_active"] is True

    @pytest.mark.asyncio
    async def test_entries_expire(self):
        cache = MemorySessionCache()
        await cache.set("tok", PAYLOAD, ttl=0.05)
        await asyncio.sleep(0.1)
        assert await cache.get("tok") is None

    @pytest.mark.asyncio
    async def test_non_positive_ttl_is_not_stored(self):
        cache = MemorySessionCache()
        await cache.set("tok", PAYLOAD, ttl=0)
        assert await cache.get("tok") is None

    @pytest.mark.asyncio
    async def test_clear_only_touches_namespace(self):
        sessions = MemorySessionCache(namespace="session")
        await sessions.set("a", PAYLOAD, ttl=60)
        sessions._entries["other:b"] = ("{}", None)

        await sessions.clear()

        assert await sessions.get("a") is None
        assert "other:b" in sessions._entries

    @pytest.mark.asyncio
    async def test_undecodable_value_is_a_cache_error(self):
        cache = MemorySessionCache()
        cache._entries["session:tok"] = ("not json{", None)
        with pytest.raises(CacheError):
            await cache.get("tok")


# -------------------------------------------------------------------
# REDIS
# -------------------------------------------------------------------

class TestRedisCache:

    @pytest.fixture
    def server(self):
        return fakeredis.FakeServer()

    @pytest.fixture
    def redis_cache(self, server):
        client = fakeredis.FakeAsyncRedis(server=server, decode_responses=True)
        return RedisSessionCache(client, namespace="session")

    @pytest.mark.asyncio
    async def test_round_trip_with_ttl(self, redis_cache):
        await redis_cache.set("tok", PAYLOAD, ttl=120)

        assert await redis_cache.get("tok") == PAYLOAD
        pttl = await redis_cache.client.pttl("session:tok")
        assert 0 < pttl <= 120_000

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, redis_cache):
        await redis_cache.set("a", PAYLOAD, ttl=60)
        await redis_cache.set("b", PAYLOAD, ttl=60)
        await redis_cache.client.set("other:c", "x")

        await redis_cache.delete("a")
        assert await redis_cache.get("a") is None

        await redis_cache.clear()
        assert await redis_cache.get("b") is None
        assert await redis_cache.client.get("other:c") == "x"

    @pytest.mark.asyncio
    async def test_connection_errors_become_cache_errors(self, server, redis_cache):
        server.connected = False
        with pytest.raises(CacheError):
            await redis_cache.get("tok")
        with pytest.raises(CacheError):
            await redis_cache.set("tok", PAYLOAD, ttl=60)

    @pytest.mark.asyncio
    async def test_undecodable_value_is_a_cache_error(self, redis_cache):
        await redis_cache.client.set("session:tok", "not json{")
        with pytest.raises(CacheError):
            await redis_cache.get("tok")


# -------------------------------------------------------------------
# RELATIONAL STORE
# -------------------------------------------------------------------

class TestDatabaseCache:

    @pytest.mark.asyncio
    async def test_set_overwrite_get_delete(self, sessionmaker):
        cache = DatabaseSessionCache(sessionmaker)
        await cache.set("tok", PAYLOAD, ttl=60)
        await cache.set("tok", {**PAYLOAD, "is_active": False}, ttl=60)

        assert (await cache.get("tok"))["is_active"] is False

        await cache.delete("tok")
        assert await cache.get("tok") is None

    @pytest.mark.asyncio
    async def test_expired_rows_are_ignored_and_purged(self, sessionmaker):
        cache = DatabaseSessionCache(sessionmaker)
        await cache.set("short", PAYLOAD, ttl=0.05)
        await cache.set("long", PAYLOAD, ttl=60)
        await cache.set("other", PAYLOAD, ttl=0.05)
        await asyncio.sleep(0.1)

        assert await cache.get("short") is None
        assert await cache.purge_expired() == 1
        assert await cache.get("long") == PAYLOAD

    @pytest.mark.asyncio
    async def test_clear(self, sessionmaker):
        cache = DatabaseSessionCache(sessionmaker)
        await cache.set("a", PAYLOAD, ttl=60)
        await cache.clear()
        assert await cache.get("a") is None

    @pytest.mark.asyncio
    async def test_undecodable_value_is_a_cache_error(self, sessionmaker):
        cache = DatabaseSessionCache(sessionmaker)
        async with sessionmaker() as db:
            db.add(CacheEntry(key="session:tok", value="not json{", expires_at=None))
            await db.commit()

        with pytest.raises(CacheError):
            await cache.get("tok")
