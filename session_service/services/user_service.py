from typing import Optional, Union
from uuid import UUID
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from session_service.models.user_model import User, UserRole
from session_service.schemas.user_schema import UserCreate
from session_service.utils.password import hash_password


class UserService:
    # -------------------------
    # Create
    # -------------------------
    @staticmethod
    async def create_user(
        db: AsyncSession,
        user_in: UserCreate,
        role: UserRole = UserRole.STUDENT,
    ) -> User:
        result = await db.execute(select(User).where(User.email == user_in.email))
        if result.scalar_one_or_none():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

        user = User(
            name=user_in.name,
            email=user_in.email,
            hashed_password=hash_password(user_in.password),
            role=role,
        )
        try:
            db.add(user)
            await db.commit()
            await db.refresh(user)
        except IntegrityError:
            await db.rollback()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
        return user

    # -------------------------
    # Read
    # -------------------------
    @staticmethod
    async def get_user(db: AsyncSession, user_id: Union[str, UUID]) -> Optional[User]:
        user_uuid = user_id if isinstance(user_id, UUID) else UUID(str(user_id))
        result = await db.execute(
            select(User).where(User.id == user_uuid).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()
