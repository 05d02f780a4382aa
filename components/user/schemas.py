"""Pydantic schemas for user data validation."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


class UserBase(BaseModel):
    """Base user schema."""
    email: str = Field(..., min_length=3, max_length=255)
    full_name: str = ""
    mobile: Optional[str] = None
    user_type: Literal["admin", "client"] = "client"


class UserCreate(UserBase):
    """Schema for user creation."""
    password: str = Field(..., min_length=6)


class User(UserBase):
    """Schema for user response."""
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: User
