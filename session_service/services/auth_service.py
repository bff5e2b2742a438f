import logging
import secrets
from typing import Optional, Union, cast
from uuid import UUID
from fastapi import HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from session_service.models.user_model import User
from session_service.schemas.auth_schema import PasswordChange
from session_service.schemas.session_schema import SessionCreate
from session_service.services.session_service import SessionManager
from session_service.services.user_service import UserService
from session_service.utils.activity_logger import log_activity
from session_service.utils.jwt import create_access_token
from session_service.utils.password import hash_password, verify_password

logger = logging.getLogger(__name__)


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


class AuthService:

    # =====================================================
    # USER AUTHENTICATION
    # =====================================================
    @staticmethod
    async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
        user = await UserService.get_by_email(db, email)

        # OAuth-only accounts have no password to check against
        if not user or not user.hashed_password:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid login credentials",
            )

        if not verify_password(password, cast(str, user.hashed_password)):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid login credentials",
            )

        return user

    # =====================================================
    # LOGIN
    # =====================================================
    @staticmethod
    async def login(
        db: AsyncSession,
        manager: SessionManager,
        email: str,
        password: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        device_id: Optional[str] = None,
        request: Optional[Request] = None,
    ):
        """
        Full login pipeline:
        - Authenticate
        - Check the account is active
        - Create the server-side session
        - Issue an access token bound to it
        """
        user = await AuthService.authenticate_user(db, email, password)

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Your account is inactive",
            )

        session = await manager.create(
            db,
            SessionCreate(
                user_id=cast(UUID, user.id),
                session_token=new_session_token(),
                expires_at=manager.default_expiry(),
                device_id=device_id,
                ip_address=ip_address,
                user_agent=user_agent,
                login_method="credentials",
            ),
        )

        access_token = create_access_token(
            str(user.id), session.session_token, session.expires_at
        )

        await log_activity(
            db, user.id, "login_success", request=request,
            description=f"User {user.email} logged in on {session.device or 'unknown device'}",
        )

        return {
            "user": user,
            "access_token": access_token,
            "token_type": "bearer",
        }

    # =====================================================
    # LOGOUT
    # =====================================================
    @staticmethod
    async def logout(
        db: AsyncSession,
        manager: SessionManager,
        session_token: str,
        user_id: Union[str, UUID],
        request: Optional[Request] = None,
    ):
        await manager.revoke(db, session_token)

        await log_activity(
            db, user_id, "logout_success", request=request,
            description="Session revoked on logout",
        )
        return {"message": "Logged out successfully"}

    # =====================================================
    # CHANGE PASSWORD
    # =====================================================
    @staticmethod
    async def change_password(
        db: AsyncSession,
        manager: SessionManager,
        user: User,
        session_token: str,
        payload: PasswordChange,
        request: Optional[Request] = None,
    ) -> int:
        """Update the password and log out every other device. Returns that count."""
        if user.hashed_password:
            if not payload.current_password or not verify_password(
                payload.current_password, cast(str, user.hashed_password)
            ):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Current password is incorrect",
                )
            if verify_password(payload.new_password, cast(str, user.hashed_password)):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="New password must be different from current password",
                )
        else:
            logger.info("User %s setting a password for the first time", user.id)

        user.hashed_password = hash_password(payload.new_password)
        await db.commit()

        revoked = await manager.revoke_all_except_current(db, user.id, session_token)

        await log_activity(
            db, user.id, "password_change", request=request,
            description=f"Password changed, {revoked} other sessions revoked",
        )
        return revoked
