"""
Router for posts, their engagement toggles and comments.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.config import settings
from core.security import get_current_user, get_optional_user
from db_config import get_db
from models.models import LocationEnum
from schemas.auth import TokenPayload
from schemas.comment import CommentCreate, CommentRead
from schemas.common import ApiResponse, MessageResponse, Page
from schemas.post import PostCreate, PostFilterParams, PostUpdate, PostWithDetails
from services.comment_service import CommentService
from services.engagement_service import EngagementService
from services.post_service import PostService

router = APIRouter(prefix="/posts", tags=["Posts"])

PostResponse = ApiResponse[PostWithDetails]
PostPageResponse = ApiResponse[Page[PostWithDetails]]


def page_param() -> int:
    return Query(1, ge=1, description="Page number, starting at 1")


def limit_param() -> int:
    return Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Posts per page")


def _viewer_id(viewer: Optional[TokenPayload]) -> Optional[int]:
    return viewer.id if viewer else None


# ============ Feeds ============
# Fixed paths are registered before /{post_id}

@router.get("", response_model=PostPageResponse, response_model_exclude_none=True)
async def list_posts(
    page: int = page_param(),
    limit: int = limit_param(),
    category: Optional[str] = Query(None, description="Category name, unknown names are ignored"),
    location: Optional[LocationEnum] = Query(None),
    search: Optional[str] = Query(None, description="Matches title or description"),
    viewer: Optional[TokenPayload] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """List public posts, newest first."""
    filters = PostFilterParams(page=page, limit=limit, category=category, location=location, search=search)
    return ApiResponse(data=PostService(db).get_posts(filters, viewer_id=_viewer_id(viewer)))


@router.get("/user", response_model=PostPageResponse, response_model_exclude_none=True)
async def list_my_posts(
    page: int = page_param(),
    limit: int = limit_param(),
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the caller's own posts, private ones included."""
    filters = PostFilterParams(page=page, limit=limit, user_id=current_user.id)
    return ApiResponse(data=PostService(db).get_posts(filters, viewer_id=current_user.id))


@router.get("/saved", response_model=PostPageResponse, response_model_exclude_none=True)
async def list_saved_posts(
    page: int = page_param(),
    limit: int = limit_param(),
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List posts the caller has saved."""
    return ApiResponse(data=PostService(db).get_saved_posts(current_user.id, page, limit))


@router.get("/followed", response_model=PostPageResponse, response_model_exclude_none=True)
async def list_followed_posts(
    page: int = page_param(),
    limit: int = limit_param(),
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List posts the caller follows."""
    return ApiResponse(data=PostService(db).get_followed_posts(current_user.id, page, limit))


# ============ Post CRUD ============

@router.post("", response_model=PostResponse, response_model_exclude_none=True, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a post owned by the caller."""
    return ApiResponse(data=PostService(db).create_post(current_user.id, post_data))


@router.get("/{post_id}", response_model=PostResponse, response_model_exclude_none=True)
async def get_post(
    post_id: str,
    viewer: Optional[TokenPayload] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Get a post by uuid. Every call counts as one view."""
    return ApiResponse(data=PostService(db).view_post(post_id, viewer_id=_viewer_id(viewer)))


@router.put("/{post_id}", response_model=PostResponse, response_model_exclude_none=True)
async def update_post(
    post_id: str,
    post_data: PostUpdate,
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a post owned by the caller."""
    return ApiResponse(data=PostService(db).update_post(post_id, current_user.id, post_data))


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a post owned by the caller."""
    PostService(db).delete_post(post_id, current_user.id)
    return MessageResponse(message="Post deleted successfully")


# ============ Engagement ============

def _toggle(db: Session, post_uuid: str, user_id: int, kind: str, add: bool) -> None:
    post_id = PostService(db).get_post_id(post_uuid)
    service = EngagementService(db)
    if add:
        service.add(kind, user_id, post_id)
    else:
        service.remove(kind, user_id, post_id)


@router.post("/{post_id}/like", response_model=MessageResponse)
async def like_post(post_id: str, current_user: TokenPayload = Depends(get_current_user), db: Session = Depends(get_db)):
    _toggle(db, post_id, current_user.id, "like", add=True)
    return MessageResponse(message="Post liked successfully")


@router.delete("/{post_id}/like", response_model=MessageResponse)
async def unlike_post(post_id: str, current_user: TokenPayload = Depends(get_current_user), db: Session = Depends(get_db)):
    _toggle(db, post_id, current_user.id, "like", add=False)
    return MessageResponse(message="Post unliked successfully")


@router.post("/{post_id}/save", response_model=MessageResponse)
async def save_post(post_id: str, current_user: TokenPayload = Depends(get_current_user), db: Session = Depends(get_db)):
    _toggle(db, post_id, current_user.id, "save", add=True)
    return MessageResponse(message="Post saved successfully")


@router.delete("/{post_id}/save", response_model=MessageResponse)
async def unsave_post(post_id: str, current_user: TokenPayload = Depends(get_current_user), db: Session = Depends(get_db)):
    _toggle(db, post_id, current_user.id, "save", add=False)
    return MessageResponse(message="Post unsaved successfully")


@router.post("/{post_id}/follow", response_model=MessageResponse)
async def follow_post(post_id: str, current_user: TokenPayload = Depends(get_current_user), db: Session = Depends(get_db)):
    _toggle(db, post_id, current_user.id, "follow", add=True)
    return MessageResponse(message="Post followed successfully")


@router.delete("/{post_id}/follow", response_model=MessageResponse)
async def unfollow_post(post_id: str, current_user: TokenPayload = Depends(get_current_user), db: Session = Depends(get_db)):
    _toggle(db, post_id, current_user.id, "follow", add=False)
    return MessageResponse(message="Post unfollowed successfully")


# ============ Comments ============

@router.get("/{post_id}/comments", response_model=ApiResponse[List[CommentRead]])
async def list_comments(post_id: str, db: Session = Depends(get_db)):
    """List a post's comments, oldest first."""
    internal_id = PostService(db).get_post_id(post_id)
    return ApiResponse(data=CommentService(db).list_comments(internal_id))


@router.post("/{post_id}/comments", response_model=ApiResponse[CommentRead], status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: str,
    comment_data: CommentCreate,
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Comment on a post."""
    internal_id = PostService(db).get_post_id(post_id)
    comment = CommentService(db).create_comment(internal_id, current_user.id, comment_data.content)
    return ApiResponse(data=comment)


@router.delete("/{post_id}/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    post_id: str,
    comment_id: int,
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete one of the caller's comments."""
    internal_id = PostService(db).get_post_id(post_id)
    CommentService(db).delete_comment(internal_id, comment_id, current_user.id)
    return MessageResponse(message="Comment deleted successfully")
