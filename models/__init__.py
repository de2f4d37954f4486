from .models import (
    User, UserPreference, Category, Subcategory, Post, Comment,
    Like, SavedPost, FollowedPost, OAuthState,
    UserRoleEnum, VisibilityEnum, LocationEnum, PostCategoryEnum
)
