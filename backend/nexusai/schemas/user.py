"""User schemas."""

from datetime import datetime

from pydantic import Field

from nexusai.schemas.base import BaseSchema


class UserCreate(BaseSchema):
    """Schema for creating a user."""

    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    email: str | None = None
    avatar: str | None = None


class User(UserCreate):
    """Stored user record. Holds the credential, so never returned as-is."""

    id: str
    created_at: datetime


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: str
    username: str
    email: str | None
    avatar: str | None
    created_at: datetime
