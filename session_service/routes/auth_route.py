from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from session_service.db import get_db
from session_service.schemas.auth_schema import LoginResponse, PasswordChange, PasswordChangeResponse
from session_service.services.auth_service import AuthService
from session_service.services.session_service import SessionManager
from session_service.utils.current_user import (
    CurrentSession,
    get_current_claims,
    get_current_session,
    get_current_user,
    get_session_manager,
)

auth_router = APIRouter(prefix="/auth", tags=["Auth"])


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else None)


# =========================================================
# LOGIN
# =========================================================
@auth_router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    email: str,
    password: str,
    x_device_id: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    return await AuthService.login(
        db=db,
        manager=manager,
        email=email,
        password=password,
        user_agent=request.headers.get("user-agent"),
        ip_address=client_ip(request),
        device_id=x_device_id,
        request=request,
    )


# =========================================================
# LOGOUT
# =========================================================
@auth_router.post("/logout")
async def logout(
    request: Request,
    claims: Dict[str, Any] = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    # works on already-revoked sessions too; revoke is idempotent
    return await AuthService.logout(
        db=db,
        manager=manager,
        session_token=claims["sid"],
        user_id=claims["sub"],
        request=request,
    )


# =========================================================
# CHANGE PASSWORD
# =========================================================
@auth_router.put("/password", response_model=PasswordChangeResponse)
async def change_password(
    request: Request,
    payload: PasswordChange,
    current: CurrentSession = Depends(get_current_session),
    user=Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    revoked = await AuthService.change_password(
        db=db,
        manager=manager,
        user=user,
        session_token=current.session_token,
        payload=payload,
        request=request,
    )
    return PasswordChangeResponse(
        success=True,
        message="Password changed successfully",
        revoked_sessions=revoked,
    )
