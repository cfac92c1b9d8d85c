"""User and profile schemas."""
from typing import Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    """Registration payload."""

    email: EmailStr
    password: str = Field(min_length=1)
    display_name: Optional[str] = None


class UserResponse(BaseModel):
    """User response schema."""

    id: UUID
    email: str
    display_name: Optional[str] = None
    github_login: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ProfileResponse(BaseModel):
    """Profile response schema."""

    user_id: UUID
    name: str = ""
    surname: str = ""
    avatar: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    """Profile update payload."""

    name: Optional[str] = None
    surname: Optional[str] = None
    avatar: Optional[str] = None
