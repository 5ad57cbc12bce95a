"""
User schemas
"""

from datetime import datetime

from pydantic import Field

from bugtracker.models.user import UserRole
from bugtracker.schemas.base import BaseSchema


class UserBase(BaseSchema):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str = Field(min_length=1, max_length=100)
    role: UserRole = Field(default=UserRole.DEVELOPER)


class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=128)


class UserLogin(BaseSchema):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=1, max_length=128)


class UserResponse(UserBase):
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TokenPair(BaseSchema):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseSchema):
    refresh_token: str | None = Field(
        default=None,
        description="Refresh token; read from the refresh cookie when omitted",
    )
