"""
User-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import EmailStr, Field, HttpUrl, field_validator
from models.models import UserRoleEnum, VisibilityEnum, LocationEnum
from schemas.common import CamelModel


class UserCreate(CamelModel):
    """Schema for registering a new user."""
    username: str = Field(..., min_length=3, max_length=30, description="Unique username")
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=6, description="User's password (min 6 characters)")
    name: str = Field(..., min_length=2, max_length=100, description="Display name")
    phone: Optional[str] = Field(None, min_length=10, max_length=20)
    location: LocationEnum
    visibility: VisibilityEnum = VisibilityEnum.public


class UserUpdate(CamelModel):
    """Schema for updating the caller's profile."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, min_length=10, max_length=20)
    location: Optional[LocationEnum] = None
    visibility: Optional[VisibilityEnum] = None
    profile_image: Optional[HttpUrl] = None

    @field_validator("name", "location", "visibility", mode="before")
    @classmethod
    def not_null(cls, value):
        # Omit the field to keep the current value; only phone and profileImage can be cleared
        if value is None:
            raise ValueError("This field cannot be null")
        return value


class UserSummary(CamelModel):
    """Public-safe author fields attached to posts and comments."""
    id: int
    uuid: str
    name: str
    username: str
    profile_image: Optional[str] = None


class AuthUser(CamelModel):
    """User fields returned alongside a token."""
    id: int
    uuid: str
    username: str
    email: str
    name: str
    profile_image: Optional[str] = None
    role: UserRoleEnum
    location: LocationEnum


class UserRead(AuthUser):
    """Full profile of the authenticated user."""
    phone: Optional[str] = None
    visibility: VisibilityEnum
    is_verified: bool
    created_at: datetime


class PublicProfile(CamelModel):
    """Profile visible to other users."""
    id: int
    uuid: str
    username: str
    name: str
    profile_image: Optional[str] = None
    location: LocationEnum
    visibility: VisibilityEnum
    created_at: datetime


class PublicPreferences(CamelModel):
    selected_categories: List[str]


class PublicProfileResponse(CamelModel):
    user: PublicProfile
    preferences: Optional[PublicPreferences] = None


class UserEnvelope(CamelModel):
    user: UserRead
