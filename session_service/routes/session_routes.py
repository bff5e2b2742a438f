import logging
from typing import Any, Dict, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from session_service.db import get_db
from session_service.routes.auth_route import client_ip
from session_service.schemas.session_schema import (
    DeviceIn,
    DeviceValidation,
    RevokeResponse,
    SessionCreate,
    SessionList,
    SessionPublic,
    SessionTokenIn,
)
from session_service.services.session_service import SessionManager
from session_service.utils.current_user import (
    CurrentSession,
    get_current_claims,
    get_current_session,
    get_session_manager,
    oauth2_scheme,
    read_claims,
)
from session_service.utils.session_guard import login_redirect, logout_redirect

logger = logging.getLogger(__name__)

session_router = APIRouter(prefix="/sessions", tags=["Sessions"])


# =========================================================
# LIST MY SESSIONS
# =========================================================
@session_router.get("", response_model=SessionList)
async def list_sessions(
    current: CurrentSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    sessions = await manager.list_active(db, current.user_id)
    return SessionList(
        sessions=[
            SessionPublic.model_validate(
                {**s.model_dump(), "is_current": s.session_token == current.session_token}
            )
            for s in sessions
        ]
    )


# =========================================================
# REVOKE ONE OF MY SESSIONS
# =========================================================
@session_router.post("/{session_id}/revoke")
async def revoke_session(
    session_id: UUID,
    current: CurrentSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    target = await manager.get_by_id(db, session_id)
    if target is None or not target.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")

    if target.user_id != current.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    await manager.revoke(db, target.session_token)
    return {"message": "Session revoked successfully"}


# =========================================================
# REVOKE ALL / ALL OTHERS
# =========================================================
@session_router.post("/revoke-all", response_model=RevokeResponse)
async def revoke_all_sessions(
    current: CurrentSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    count = await manager.revoke_all(db, current.user_id)
    return RevokeResponse(message="All sessions revoked successfully", revoked_sessions=count)


@session_router.post("/revoke-others", response_model=RevokeResponse)
async def revoke_other_sessions(
    current: CurrentSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    count = await manager.revoke_all_except_current(db, current.user_id, current.session_token)
    return RevokeResponse(message=f"{count} other devices logged out", revoked_sessions=count)


# =========================================================
# VALIDATE A TOKEN FOR THE CURRENT USER
# =========================================================
@session_router.post("/validate")
async def validate_session(
    payload: SessionTokenIn,
    current: CurrentSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    row = await manager.lookup(db, payload.session_token)
    if row is None:
        # may not have been created yet
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")

    if row.user_id != current.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Session mismatch")

    result = await manager.validate(db, payload.session_token)
    if not result.valid:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail=f"Session invalid: {result.reason}"
        )

    return {"valid": True}


# =========================================================
# ENSURE THE CURRENT TOKEN HAS A SESSION ROW
# =========================================================
@session_router.post("/ensure")
async def ensure_session(
    request: Request,
    payload: Optional[DeviceIn] = None,
    claims: Dict[str, Any] = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    token = claims["sid"]
    user_id = UUID(str(claims["sub"]))
    device_id = payload.device_id if payload else None

    existing = await manager.get(db, token)

    if existing is None:
        row = await manager.lookup(db, token)
        if row is not None and (not row.is_active or row.user_id != user_id):
            # a revoked session must not be brought back through this path
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Session invalid")

        await manager.create(
            db,
            SessionCreate(
                user_id=user_id,
                session_token=token,
                expires_at=manager.default_expiry(),
                device_id=device_id,
                ip_address=client_ip(request),
                user_agent=request.headers.get("user-agent"),
                login_method=claims.get("lm"),
            ),
        )
        logger.info("Session ensured for user %s", user_id)
        return {"created": True}

    if existing.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Session mismatch")

    if not existing.device_id and device_id:
        await manager.create(
            db,
            SessionCreate(
                user_id=user_id,
                session_token=token,
                expires_at=existing.expires_at,
                device_id=device_id,
                ip_address=existing.ip_address,
                user_agent=existing.user_agent,
                location=existing.location,
                login_method=existing.login_method,
            ),
        )
        logger.info("Session backfilled with device id for user %s", user_id)
        return {"updated": True}

    return {"exists": True}


# =========================================================
# DEVICE BINDING CHECK
# =========================================================
@session_router.post("/validate-device", response_model=DeviceValidation)
async def validate_device(
    payload: DeviceIn,
    current: CurrentSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    if not payload.device_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Device ID required")

    session = await manager.get(db, current.session_token)
    if session is None:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content=DeviceValidation(valid=False, reason="Session not found").model_dump(),
        )

    if session.device_id and session.device_id != payload.device_id:
        logger.warning(
            "Device id mismatch for user %s: expected %s... got %s...",
            current.user_id, session.device_id[:8], payload.device_id[:8],
        )
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content=DeviceValidation(
                valid=False,
                reason="session_hijacking",
                message="Your session is being used on another device. "
                        "For security reasons, you have been logged out.",
                should_logout=True,
                severity="critical",
            ).model_dump(),
        )

    return DeviceValidation(valid=True)


# =========================================================
# PAGE GUARD
# =========================================================
@session_router.get("/check")
async def check_session(
    locale: str = "km",
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    """Redirects to login/logout when the caller's session is unusable."""
    claims = read_claims(token)
    if claims is None:
        return login_redirect(locale)

    if not claims.get("sid"):
        logger.info("No session token in access token, redirecting to logout")
        return logout_redirect("no_token", locale)

    validation = await manager.validate(db, claims["sid"])
    if not validation.valid:
        logger.info("Session invalid: %s", validation.reason)
        return logout_redirect(validation.reason, locale)

    return {"valid": True, "user_id": str(validation.user_id)}
