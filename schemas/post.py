"""
Pydantic schemas for posts and the enriched post view.
"""
from datetime import datetime
from typing import Dict, Optional
from pydantic import Field, HttpUrl
from models.models import LocationEnum, VisibilityEnum
from schemas.common import CamelModel
from schemas.category import CategorySummary, SubcategorySummary
from schemas.user import UserSummary

# Known metadata keys: price, date, time, model. Any other string key is accepted.
PostMetadata = Dict[str, str]


class PostCreate(CamelModel):
    """Schema for creating a post."""
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=10)
    category_id: int
    subcategory_id: Optional[int] = None
    location: LocationEnum
    location_details: Optional[str] = Field(None, max_length=100)
    image_url: Optional[HttpUrl] = None
    visibility: VisibilityEnum = VisibilityEnum.public
    metadata: Optional[PostMetadata] = None


class PostUpdate(CamelModel):
    """Partial update; only supplied fields change."""
    title: Optional[str] = Field(None, min_length=5, max_length=100)
    description: Optional[str] = Field(None, min_length=10)
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    location: Optional[LocationEnum] = None
    location_details: Optional[str] = Field(None, max_length=100)
    image_url: Optional[HttpUrl] = None
    visibility: Optional[VisibilityEnum] = None
    metadata: Optional[PostMetadata] = None


class PostWithDetails(CamelModel):
    """A post annotated with its author, taxonomy and engagement data."""
    id: int
    uuid: str
    title: str
    description: str
    category: CategorySummary
    subcategory: Optional[SubcategorySummary] = None
    location: LocationEnum
    location_details: Optional[str] = None
    image_url: Optional[str] = None
    visibility: VisibilityEnum
    metadata: Optional[PostMetadata] = None
    view_count: int
    created_at: datetime
    updated_at: datetime
    user: UserSummary
    like_count: int = 0
    comment_count: int = 0
    # Viewer-relative flags, only present when the request carries a viewer
    is_liked: Optional[bool] = None
    is_saved: Optional[bool] = None
    is_followed: Optional[bool] = None


class PostFilterParams(CamelModel):
    """Feed filters. ``user_id`` restricts to one owner and lifts the public-only rule."""
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1)
    category: Optional[str] = None
    location: Optional[LocationEnum] = None
    search: Optional[str] = None
    user_id: Optional[int] = None
