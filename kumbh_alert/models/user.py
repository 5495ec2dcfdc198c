"""
User models for authentication and user management.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class Role(str, Enum):
    PILGRIM = "pilgrim"
    VOLUNTEER = "volunteer"
    MEDICAL = "medical"
    ADMIN = "admin"


class UserCreate(BaseModel):
    """Self-service signup. Always creates a pilgrim account."""
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: EmailStr = Field(..., description="Login email (case-insensitive)")
    phone: str = Field(..., min_length=1, max_length=20, description="Contact phone")
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")


class LoginRequest(BaseModel):
    """Login by email, by user id, or by one of the staff role shortcuts."""
    email: Optional[str] = Field(None, description="Email address")
    id: Optional[str] = Field(None, description="User id or role shortcut (admin/volunteer/medical)")
    password: str = Field(..., min_length=1)


class LocationUpdate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class Actor(BaseModel):
    """
    Authenticated identity attached to a request.

    Services only ever see an Actor (or None for anonymous callers),
    never raw tokens or password hashes.
    """
    id: str
    role: Role
    is_active: bool = True
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
