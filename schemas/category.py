"""
Pydantic schemas for the category taxonomy.
"""
from datetime import datetime
from typing import Optional
from models.models import PostCategoryEnum
from schemas.common import CamelModel


class CategorySummary(CamelModel):
    id: int
    name: PostCategoryEnum
    display_name: str


class SubcategorySummary(CamelModel):
    id: int
    name: str
    display_name: str


class CategoryRead(CategorySummary):
    icon: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SubcategoryRead(SubcategorySummary):
    category_id: int
    created_at: datetime
    updated_at: datetime
