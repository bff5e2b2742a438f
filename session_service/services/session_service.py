import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import UUID
from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from session_service.cache import CacheError, SessionCache, build_cache
from session_service.config import Settings
from session_service.models.session_model import UserSession
from session_service.models.user_model import User
from session_service.schemas.session_schema import SessionCreate, SessionRead, SessionValidation
from session_service.utils.timeutils import as_utc, utc_now
from session_service.utils.user_agent import parse_user_agent

logger = logging.getLogger(__name__)

REASON_NOT_FOUND = "not found"
REASON_INACTIVE = "inactive"
REASON_EXPIRED = "expired"
REASON_USER_NOT_FOUND = "user not found"
REASON_USER_INACTIVE = "user inactive"


def _mask(token: str) -> str:
    return token[:10] + "..."


def _as_uuid(value: Union[str, UUID]) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


class SessionManager:
    """
    Session lifecycle over the relational store, mirrored into a cache.

    The store is authoritative. Cache writes are best-effort and every cache
    hit is re-checked against the store's ``is_active``/``expires_at``
    columns, so a revoked session can never be served from a stale cache
    entry. The two writes are not transactional; divergence is bounded by
    the entry TTL and the re-check.
    """

    def __init__(self, cache: SessionCache, lifetime: timedelta = timedelta(days=30)):
        self.cache = cache
        self.lifetime = lifetime

    def default_expiry(self):
        return utc_now() + self.lifetime

    # -------------------------------
    # Cache helpers (never raise)
    # -------------------------------
    async def _cache_get(self, token: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.cache.get(token)
        except CacheError as e:
            logger.warning("Session cache read failed for %s: %s", _mask(token), e)
            return None

    async def _cached_session(self, token: str) -> Optional[SessionRead]:
        cached = await self._cache_get(token)
        if cached is None:
            return None
        try:
            return SessionRead.model_validate(cached)
        except ValidationError as e:
            logger.warning("Discarding malformed cache entry for %s: %s", _mask(token), e)
            await self._cache_delete(token)
            return None

    async def _cache_put(self, session: SessionRead) -> None:
        ttl = (session.expires_at - utc_now()).total_seconds()
        try:
            if ttl > 0:
                await self.cache.set(session.session_token, session.model_dump(mode="json"), ttl)
            else:
                await self.cache.delete(session.session_token)
        except CacheError as e:
            logger.warning("Session cache write failed for %s: %s", _mask(session.session_token), e)

    async def _cache_delete(self, token: str) -> None:
        try:
            await self.cache.delete(token)
        except CacheError as e:
            logger.warning("Session cache delete failed for %s: %s", _mask(token), e)

    async def _cache_delete_many(self, tokens: Iterable[str]) -> None:
        await asyncio.gather(*(self._cache_delete(token) for token in tokens))

    # -------------------------------
    # Store helpers
    # -------------------------------
    async def _find_row(self, db: AsyncSession, token: str) -> Optional[UserSession]:
        result = await db.execute(
            select(UserSession)
            .where(UserSession.session_token == token)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _upsert(self, db: AsyncSession, values: Dict[str, Any]) -> UserSession:
        row = await self._find_row(db, values["session_token"])
        if row is None:
            row = UserSession(**values)
            db.add(row)
        else:
            # re-entrant sign-in: overwrite in place instead of duplicating
            for field, value in values.items():
                setattr(row, field, value)
        await db.commit()
        await db.refresh(row)
        return row

    # -------------------------------
    # CREATE
    # -------------------------------
    async def create(self, db: AsyncSession, session_in: SessionCreate) -> SessionRead:
        device, browser, os_name = parse_user_agent(session_in.user_agent)
        values = {
            "user_id": session_in.user_id,
            "session_token": session_in.session_token,
            "device_id": session_in.device_id,
            "ip_address": session_in.ip_address,
            "user_agent": session_in.user_agent,
            "device": device,
            "browser": browser,
            "os": os_name,
            "location": session_in.location,
            "login_method": session_in.login_method,
            "is_active": True,
            "last_activity": utc_now(),
            "expires_at": session_in.expires_at,
        }

        try:
            row = await self._upsert(db, values)
        except IntegrityError:
            # a concurrent insert of the same token won the race; last writer wins
            await db.rollback()
            row = await self._upsert(db, values)

        session = SessionRead.model_validate(row)
        await self._cache_put(session)

        logger.info(
            "Session created: user_id=%s token=%s device=%s browser=%s",
            session.user_id, _mask(session.session_token), device, browser,
        )
        return session

    # -------------------------------
    # READ
    # -------------------------------
    async def get(self, db: AsyncSession, token: str) -> Optional[SessionRead]:
        cached = await self._cached_session(token)
        if cached is not None:
            result = await db.execute(
                select(UserSession.is_active, UserSession.expires_at).where(
                    UserSession.session_token == token
                )
            )
            state = result.one_or_none()
            if state is None or not state.is_active or as_utc(state.expires_at) <= utc_now():
                await self._cache_delete(token)
                return None
            return cached

        result = await db.execute(
            select(UserSession)
            .where(
                UserSession.session_token == token,
                UserSession.is_active.is_(True),
                UserSession.expires_at > utc_now(),
            )
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None

        session = SessionRead.model_validate(row)
        await self._cache_put(session)
        return session

    async def lookup(self, db: AsyncSession, token: str) -> Optional[SessionRead]:
        """Store-only lookup regardless of state; bypasses the cache."""
        row = await self._find_row(db, token)
        return SessionRead.model_validate(row) if row is not None else None

    async def get_by_id(self, db: AsyncSession, session_id: Union[str, UUID]) -> Optional[SessionRead]:
        result = await db.execute(
            select(UserSession)
            .where(UserSession.id == _as_uuid(session_id))
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return SessionRead.model_validate(row) if row is not None else None

    async def list_active(self, db: AsyncSession, user_id: Union[str, UUID]) -> List[SessionRead]:
        result = await db.execute(
            select(UserSession)
            .where(
                UserSession.user_id == _as_uuid(user_id),
                UserSession.is_active.is_(True),
                UserSession.expires_at > utc_now(),
            )
            .order_by(UserSession.last_activity.desc())
            .execution_options(populate_existing=True)
        )
        return [SessionRead.model_validate(row) for row in result.scalars().all()]

    # -------------------------------
    # ACTIVITY
    # -------------------------------
    async def update_activity(self, db: AsyncSession, token: str) -> None:
        now = utc_now()
        await db.execute(
            update(UserSession)
            .where(UserSession.session_token == token)
            .values(last_activity=now)
        )
        await db.commit()

        cached = await self._cached_session(token)
        if cached is not None:
            await self._cache_put(cached.model_copy(update={"last_activity": now}))

    # -------------------------------
    # REVOKE
    # -------------------------------
    async def revoke(self, db: AsyncSession, token: str) -> None:
        await db.execute(
            update(UserSession)
            .where(UserSession.session_token == token, UserSession.is_active.is_(True))
            .values(is_active=False)
        )
        await db.commit()
        await self._cache_delete(token)
        logger.info("Session revoked: %s", _mask(token))

    async def _revoke_for_user(
        self, db: AsyncSession, user_id: Union[str, UUID], keep_token: Optional[str] = None
    ) -> int:
        conditions = [UserSession.user_id == _as_uuid(user_id), UserSession.is_active.is_(True)]
        if keep_token is not None:
            conditions.append(UserSession.session_token != keep_token)

        result = await db.execute(select(UserSession.session_token).where(*conditions))
        tokens = list(result.scalars().all())
        if not tokens:
            return 0

        await db.execute(
            update(UserSession)
            .where(UserSession.session_token.in_(tokens))
            .values(is_active=False)
        )
        await db.commit()
        await self._cache_delete_many(tokens)
        return len(tokens)

    async def revoke_all(self, db: AsyncSession, user_id: Union[str, UUID]) -> int:
        count = await self._revoke_for_user(db, user_id)
        logger.info("All sessions revoked for user %s (%d)", user_id, count)
        return count

    async def revoke_all_except_current(
        self, db: AsyncSession, user_id: Union[str, UUID], current_token: str
    ) -> int:
        count = await self._revoke_for_user(db, user_id, keep_token=current_token)
        logger.info("Revoked %d other sessions for user %s", count, user_id)
        return count

    # -------------------------------
    # VALIDATE
    # -------------------------------
    async def validate(self, db: AsyncSession, token: str) -> SessionValidation:
        session = await self.get(db, token)

        if session is None:
            # distinguish revoked/expired rows from unknown tokens
            row = await self.lookup(db, token)
            if row is None:
                return SessionValidation(valid=False, reason=REASON_NOT_FOUND)
            if not row.is_active:
                return SessionValidation(valid=False, reason=REASON_INACTIVE)
            if row.expires_at <= utc_now():
                await self.revoke(db, token)
                return SessionValidation(valid=False, reason=REASON_EXPIRED)
            return SessionValidation(valid=False, reason=REASON_NOT_FOUND)

        if not session.is_active:
            return SessionValidation(valid=False, reason=REASON_INACTIVE)

        if session.expires_at <= utc_now():
            await self.revoke(db, token)
            return SessionValidation(valid=False, reason=REASON_EXPIRED)

        result = await db.execute(
            select(User.is_active).where(User.id == session.user_id)
        )
        user_active = result.scalar_one_or_none()

        if user_active is None:
            await self.revoke(db, token)
            return SessionValidation(valid=False, reason=REASON_USER_NOT_FOUND)

        if not user_active:
            await self.revoke(db, token)
            return SessionValidation(valid=False, reason=REASON_USER_INACTIVE)

        try:
            await self.update_activity(db, token)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning("Could not record activity for %s: %s", _mask(token), e)

        return SessionValidation(valid=True, user_id=session.user_id)

    # -------------------------------
    # MAINTENANCE
    # -------------------------------
    async def sweep_expired(self, db: AsyncSession) -> int:
        now = utc_now()
        result = await db.execute(
            select(UserSession.session_token).where(
                UserSession.is_active.is_(True), UserSession.expires_at < now
            )
        )
        tokens = list(result.scalars().all())
        if not tokens:
            return 0

        await db.execute(
            update(UserSession)
            .where(UserSession.session_token.in_(tokens))
            .values(is_active=False)
        )
        await db.commit()
        await self._cache_delete_many(tokens)

        logger.info("Cleaned up %d expired sessions", len(tokens))
        return len(tokens)

    async def clear_cache(self) -> None:
        try:
            await self.cache.clear()
        except CacheError as e:
            logger.warning("Session cache clear failed: %s", e)
            return
        logger.info("Session cache cleared")

    async def close(self) -> None:
        await self.cache.close()


def build_session_manager(
    config: Settings, sessionmaker: Optional[async_sessionmaker] = None
) -> SessionManager:
    cache = build_cache(config.cache_config(), sessionmaker=sessionmaker)
    return SessionManager(cache, lifetime=timedelta(days=config.SESSION_LIFETIME_DAYS))
