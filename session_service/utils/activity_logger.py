from typing import Optional, Union
from uuid import UUID
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from session_service.models.activity_log_model import ActivityLog


async def log_activity(
    db: AsyncSession,
    user_id: Optional[Union[str, UUID]],
    activity_type: str,
    request: Optional[Request] = None,
    **kwargs,
) -> Optional[ActivityLog]:
    """
    Records an audit entry in the ActivityLog table.
    Anonymous events (no user id) are skipped.
    """
    if user_id is None:
        return None

    # Extract request metadata (if available)
    ip_address = None
    user_agent = None
    if request:
        ip_address = request.client.host if request.client else None
        user_agent = request.headers.get("user-agent")

    log = ActivityLog(
        user_id=user_id if isinstance(user_id, UUID) else UUID(str(user_id)),
        activity_type=activity_type,
        ip_address=ip_address,
        user_agent=user_agent,
        **kwargs,
    )

    try:
        db.add(log)
        await db.commit()
        await db.refresh(log)
        return log
    except SQLAlchemyError as e:
        await db.rollback()
        raise e
