"""
User profile and preference management routes.
"""
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.security import get_current_user, get_optional_user
from db_config import get_db
from schemas.auth import TokenPayload
from schemas.common import ApiResponse
from schemas.preference import (
    CategoryPreferencesUpdate, NotificationPreferencesUpdate, PreferencesRead
)
from schemas.user import (
    PublicPreferences, PublicProfile, PublicProfileResponse, UserEnvelope, UserRead, UserUpdate
)
from services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.patch("/profile", response_model=ApiResponse[UserEnvelope])
async def update_profile(
    user_update: UserUpdate,
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update the caller's profile."""
    user = UserService(db).update_profile(current_user.id, user_update)
    return ApiResponse(data=UserEnvelope(user=UserRead.model_validate(user)))


@router.get("/preferences", response_model=ApiResponse[PreferencesRead])
async def get_preferences(
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the caller's preferences, created with defaults on first access."""
    preferences = UserService(db).get_preferences(current_user.id)
    return ApiResponse(data=PreferencesRead.model_validate(preferences))


@router.post("/preferences/categories", response_model=ApiResponse[PreferencesRead])
async def update_category_preferences(
    payload: CategoryPreferencesUpdate,
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Replace the caller's selected categories, keeping their order."""
    preferences = UserService(db).update_selected_categories(
        current_user.id, [category.value for category in payload.categories]
    )
    return ApiResponse(data=PreferencesRead.model_validate(preferences))


@router.post("/preferences/notifications", response_model=ApiResponse[PreferencesRead])
async def update_notification_preferences(
    payload: NotificationPreferencesUpdate,
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Replace the caller's notification toggles."""
    preferences = UserService(db).update_notification_preferences(current_user.id, payload.preferences)
    return ApiResponse(data=PreferencesRead.model_validate(preferences))


@router.get("/{user_id}", response_model=ApiResponse[PublicProfileResponse])
async def get_user_profile(
    user_id: str,
    viewer: Optional[TokenPayload] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Get a user's public profile by uuid. Private profiles are visible to their owner only."""
    service = UserService(db)
    user = service.get_public_profile(user_id, viewer.id if viewer else None)
    preferences = service.find_preferences(user.id)
    return ApiResponse(data=PublicProfileResponse(
        user=PublicProfile.model_validate(user),
        preferences=PublicPreferences.model_validate(preferences) if preferences else None,
    ))
