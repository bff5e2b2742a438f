from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from session_service.db import get_db
from session_service.models.user_model import UserRole
from session_service.schemas.session_schema import RevokeResponse
from session_service.services.session_service import SessionManager
from session_service.services.user_service import UserService
from session_service.utils.activity_logger import log_activity
from session_service.utils.current_user import get_session_manager, require_role

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

require_admin = require_role(UserRole.ADMIN)


@admin_router.post("/sessions/sweep")
async def sweep_expired_sessions(
    admin=Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    swept = await manager.sweep_expired(db)
    return {"swept": swept}


@admin_router.post("/users/{user_id}/sessions/revoke", response_model=RevokeResponse)
async def revoke_user_sessions(
    user_id: UUID,
    request: Request,
    admin=Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    user = await UserService.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    count = await manager.revoke_all(db, user_id)

    await log_activity(
        db, user_id, "sessions_revoked_by_admin", request=request,
        description=f"{count} sessions revoked by {admin.email}",
    )
    return RevokeResponse(message="All sessions revoked successfully", revoked_sessions=count)


@admin_router.post("/sessions/cache/clear")
async def clear_session_cache(
    admin=Depends(require_admin),
    manager: SessionManager = Depends(get_session_manager),
):
    await manager.clear_cache()
    return {"message": "Session cache cleared"}
