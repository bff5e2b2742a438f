import enum
from typing import Optional
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheBackend(str, enum.Enum):
    AUTO = "auto"
    REDIS = "redis"
    DATABASE = "database"
    MEMORY = "memory"


class CacheConfig(BaseModel):
    """Cache selection resolved once at startup."""

    backend: CacheBackend
    redis_url: Optional[str] = None
    database_url: Optional[str] = None
    namespace: str = "session"


class Settings(BaseSettings):
    # allow None so imports won't accidentally create an engine
    DATABASE_URL: Optional[str] = None
    REDIS_URL: Optional[str] = None

    CACHE_BACKEND: CacheBackend = CacheBackend.AUTO
    CACHE_NAMESPACE: str = "session"
    SESSION_LIFETIME_DAYS: int = 30

    JWT_SECRET_KEY: str = "supersecret"
    JWT_ALGORITHM: str = "HS256"

    ALLOWED_HOSTS: str = "127.0.0.1,localhost,testserver,*"
    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def cache_config(self) -> CacheConfig:
        # Priority for auto: Redis > relational store > in-process memory
        backend = self.CACHE_BACKEND
        if backend is CacheBackend.AUTO:
            if self.REDIS_URL:
                backend = CacheBackend.REDIS
            elif self.DATABASE_URL:
                backend = CacheBackend.DATABASE
            else:
                backend = CacheBackend.MEMORY

        if backend is CacheBackend.REDIS and not self.REDIS_URL:
            raise RuntimeError("CACHE_BACKEND=redis requires REDIS_URL")
        if backend is CacheBackend.DATABASE and not self.DATABASE_URL:
            raise RuntimeError("CACHE_BACKEND=database requires DATABASE_URL")

        return CacheConfig(
            backend=backend,
            redis_url=self.REDIS_URL,
            database_url=self.DATABASE_URL,
            namespace=self.CACHE_NAMESPACE,
        )

settings = Settings()
