"""Authentication and user schemas"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from jerktracker.models.user import UserRole
from jerktracker.schemas.common import Pagination


class Token(BaseModel):
    """JWT token response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class RegisterRequest(BaseModel):
    """Self-registration into an existing restaurant"""
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: str = Field(min_length=1, max_length=100)
    restaurant_id: str
    role: UserRole = UserRole.STAFF


class UserCreate(BaseModel):
    """Create user request (admin)"""
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: str = Field(min_length=1, max_length=100)
    role: UserRole = UserRole.STAFF
    restaurant_id: Optional[str] = None


class UserUpdate(BaseModel):
    """Update user request. Role and restaurant changes are admin-only."""
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    role: Optional[UserRole] = None
    restaurant_id: Optional[str] = None
    is_active: Optional[bool] = None


class UserResponse(BaseModel):
    """User response"""
    id: str
    email: str
    name: str
    role: UserRole
    restaurant_id: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class UserListResponse(BaseModel):
    users: List[UserResponse]
    pagination: Pagination
