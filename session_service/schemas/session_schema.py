from pydantic import BaseModel, ConfigDict, field_validator
from uuid import UUID
from datetime import datetime
from typing import List, Optional
from session_service.utils.timeutils import as_utc


class SessionCreate(BaseModel):
    user_id: UUID
    session_token: str
    expires_at: datetime
    device_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    location: Optional[str] = None
    login_method: Optional[str] = None

    @field_validator("expires_at")
    @classmethod
    def _normalize_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class SessionRead(BaseModel):
    """Full session record, as stored and as cached."""

    id: UUID
    user_id: UUID
    session_token: str
    device_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    location: Optional[str] = None
    login_method: Optional[str] = None
    is_active: bool
    last_activity: datetime
    expires_at: datetime
    date_created: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("last_activity", "expires_at", "date_created")
    @classmethod
    def _normalize_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class SessionPublic(BaseModel):
    # Never exposes the token of other devices
    id: UUID
    device: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    ip_address: Optional[str] = None
    location: Optional[str] = None
    login_method: Optional[str] = None
    last_activity: datetime
    expires_at: datetime
    date_created: datetime
    is_current: bool = False

    model_config = ConfigDict(from_attributes=True)


class SessionList(BaseModel):
    sessions: List[SessionPublic]


class SessionValidation(BaseModel):
    valid: bool
    user_id: Optional[UUID] = None
    reason: Optional[str] = None


class SessionTokenIn(BaseModel):
    session_token: str


class DeviceIn(BaseModel):
    device_id: Optional[str] = None


class DeviceValidation(BaseModel):
    valid: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    should_logout: bool = False
    severity: Optional[str] = None


class RevokeResponse(BaseModel):
    message: str
    revoked_sessions: int = 0
