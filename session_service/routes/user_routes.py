from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from session_service.db import get_db
from session_service.schemas.user_schema import UserCreate, UserResponse
from session_service.services.user_service import UserService
from session_service.utils.current_user import get_current_user

user_router = APIRouter(prefix="/users", tags=["Users"])


# -------------------------
# Register
# -------------------------
@user_router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    return await UserService.create_user(db, user_in)


# -------------------------
# Current user
# -------------------------
@user_router.get("/me", response_model=UserResponse)
async def read_me(user=Depends(get_current_user)):
    return user
