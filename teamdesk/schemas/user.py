"""
User Schemas

Request/response models for the signed-in user's own account.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class UserResponse(BaseModel):
    """User response schema (excludes sensitive data)."""
    id: str
    email: str
    full_name: Optional[str] = None
    is_active: bool
    email_verified: bool
    onboarding_completed: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True  # Allows creating from ORM models


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=100)


class RoleResponse(BaseModel):
    """Effective role and what it allows."""
    role: Optional[str] = None
    permissions: List[str] = []
