"""
Authentication Schemas

Request/response models for authentication endpoints.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class Token(BaseModel):
    """Session token response."""
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class SessionData(BaseModel):
    """Decoded session token, attached to request.state.session."""
    user_id: str
    email: str
    expires_at: Optional[datetime] = None


class LoginRequest(BaseModel):
    """Login request body."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    """User registration request."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    full_name: Optional[str] = Field(None, max_length=255)

    class Config:
        json_schema_extra = {
            "example": {
                "email": "user@example.com",
                "password": "securepassword123",
                "full_name": "Jane Doe"
            }
        }


class SessionResponse(BaseModel):
    authenticated: bool
    user_id: Optional[str] = None
    email: Optional[str] = None
    expires_at: Optional[datetime] = None


class EmailRequest(BaseModel):
    """Body of forgot-password and resend-verification."""
    email: EmailStr


class PasswordResetRequest(BaseModel):
    """Set a new password with the token from a reset link."""
    token: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
