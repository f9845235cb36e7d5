"""
Auth-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from mekcook.core.http import Envelope


class UserRegister(BaseModel):
    """Schema for user registration request."""
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=4, max_length=255)


class UserLogin(BaseModel):
    """Schema for user login request."""
    email: EmailStr
    password: str = Field(min_length=4, max_length=255)


class UserResponse(BaseModel):
    """
    Schema for user response (without password).

    Also the authenticated principal attached to the request.
    """
    id: str
    name: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(Envelope):
    """Schema for register/login response."""
    user: UserResponse
    token: str


class CheckResponse(Envelope):
    """Schema for the current-user check."""
    user: UserResponse
