# Schemas package for Pydantic models
from .common import ApiResponse, MessageResponse, Page, PaginationMeta
from .user import UserCreate, UserUpdate, UserRead, UserSummary, AuthUser, PublicProfileResponse
from .auth import LoginRequest, AuthResponse, ChangePasswordRequest, TokenPayload
from .category import CategoryRead, SubcategoryRead
from .post import PostCreate, PostUpdate, PostWithDetails, PostFilterParams
from .comment import CommentCreate, CommentRead
from .preference import PreferencesRead, CategoryPreferencesUpdate, NotificationPreferencesUpdate

__all__ = [
    "ApiResponse", "MessageResponse", "Page", "PaginationMeta",
    "UserCreate", "UserUpdate", "UserRead", "UserSummary", "AuthUser", "PublicProfileResponse",
    "LoginRequest", "AuthResponse", "ChangePasswordRequest", "TokenPayload",
    "CategoryRead", "SubcategoryRead",
    "PostCreate", "PostUpdate", "PostWithDetails", "PostFilterParams",
    "CommentCreate", "CommentRead",
    "PreferencesRead", "CategoryPreferencesUpdate", "NotificationPreferencesUpdate",
]
