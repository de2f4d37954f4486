"""
Pydantic schemas for user preferences.
"""
from typing import Dict, List
from pydantic import Field, field_validator
from models.models import PostCategoryEnum
from schemas.common import CamelModel


class PreferencesRead(CamelModel):
    selected_categories: List[str]
    notification_preferences: Dict[str, bool]


class CategoryPreferencesUpdate(CamelModel):
    """Replace the ordered list of followed categories."""
    categories: List[PostCategoryEnum] = Field(..., min_length=1)


class NotificationPreferencesUpdate(CamelModel):
    """Replace the notification toggle map. Keys are free-form."""
    preferences: Dict[str, bool]

    @field_validator("preferences")
    @classmethod
    def not_empty(cls, value: Dict[str, bool]) -> Dict[str, bool]:
        if not value:
            raise ValueError("At least one notification preference is required")
        return value
