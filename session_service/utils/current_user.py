# utils/current_user.py

from typing import Any, Callable, Dict, NamedTuple, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from session_service.db import get_db
from session_service.models.user_model import User, UserRole
from session_service.services.session_service import SessionManager
from session_service.services.user_service import UserService
from session_service.utils.jwt import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


class CurrentSession(NamedTuple):
    user_id: UUID
    session_token: str


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def _unauthorized(detail: str, reason: Optional[str] = None) -> HTTPException:
    headers = {"WWW-Authenticate": "Bearer"}
    if reason:
        headers["X-Session-Reason"] = reason
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail, headers=headers)


def read_claims(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decoded access-token claims, or None when absent or undecodable."""
    if not token:
        return None
    try:
        payload = decode_access_token(token)
        UUID(str(payload.get("sub")))
    except (JWTError, ValueError):
        return None
    return payload


async def get_current_claims(token: Optional[str] = Depends(oauth2_scheme)) -> Dict[str, Any]:
    """Authenticated token claims without checking the server-side session."""
    claims = read_claims(token)
    if claims is None:
        raise _unauthorized("Could not validate credentials")
    if not claims.get("sid"):
        raise _unauthorized("Session token missing", reason="no_token")
    return claims


async def get_current_session(
    claims: Dict[str, Any] = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
) -> CurrentSession:
    validation = await manager.validate(db, claims["sid"])
    if not validation.valid:
        raise _unauthorized(f"Session invalid: {validation.reason}", reason=validation.reason)

    if str(validation.user_id) != str(claims["sub"]):
        raise _unauthorized("Session mismatch", reason="mismatch")

    return CurrentSession(user_id=validation.user_id, session_token=claims["sid"])


async def get_current_user(
    current: CurrentSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await UserService.get_user(db, current.user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


def require_role(role: UserRole) -> Callable:
    """Admins satisfy every role requirement."""

    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role is not role and user.role is not UserRole.ADMIN:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return user

    return _check
