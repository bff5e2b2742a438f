from pydantic import StringConstraints, BaseModel, EmailStr, ConfigDict
from typing import Annotated
from uuid import UUID
from datetime import datetime
from session_service.models.user_model import UserRole


class UserBase(BaseModel):
    name: Annotated[str, StringConstraints(min_length=1, max_length=255)]
    email: EmailStr


class UserCreate(UserBase):
    password: Annotated[str, StringConstraints(min_length=6)]


class UserResponse(UserBase):
    id: UUID
    role: UserRole
    is_active: bool
    date_created: datetime

    model_config = ConfigDict(from_attributes=True)
