from pydantic import BaseModel, ConfigDict, StringConstraints, model_validator
from typing import Annotated, Optional
from session_service.schemas.user_schema import UserResponse


class LoginResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str

    model_config = ConfigDict(from_attributes=True)


class PasswordChange(BaseModel):
    # optional for OAuth-only accounts setting a password the first time
    current_password: Optional[str] = None
    new_password: Annotated[str, StringConstraints(min_length=6)]
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class PasswordChangeResponse(BaseModel):
    success: bool
    message: str
    revoked_sessions: int
