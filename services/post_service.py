"""
Post Service: feed queries, enrichment and post CRUD.

Enrichment runs a fixed number of queries per page regardless of page size:
the page query eager-joins author, category and subcategory, then one grouped
count per engagement table and, for a known viewer, one id lookup per
viewer-relative flag.
"""
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set, Type
from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session, joinedload
from models.models import (
    Post, Category, Subcategory, Comment, Like, SavedPost, FollowedPost, VisibilityEnum
)
from schemas.category import CategorySummary, SubcategorySummary
from schemas.common import Page, PaginationMeta
from schemas.post import PostCreate, PostUpdate, PostWithDetails, PostFilterParams
from schemas.user import UserSummary
from services.category_service import CategoryService
from core.exceptions import AuthorizationException, ResourceNotFoundException, ValidationException
from core.logging import get_logger

logger = get_logger("posts")

# Columns a partial update may clear by sending null
NULLABLE_UPDATE_FIELDS = {"subcategory_id", "location_details", "image_url", "metadata"}


def empty_page(page: int, limit: int) -> Page[PostWithDetails]:
    return Page[PostWithDetails](
        data=[],
        meta=PaginationMeta(total=0, page=page, limit=limit, total_pages=0),
    )


class PostService:
    """Service for listing, enriching and managing posts."""

    def __init__(self, db: Session):
        self.db = db

    # ============ Enrichment ============

    def _count_by_post(self, model: Type, post_ids: List[int]) -> Dict[int, int]:
        stmt = (
            select(model.post_id, func.count(model.id))
            .where(model.post_id.in_(post_ids))
            .group_by(model.post_id)
        )
        return {post_id: count for post_id, count in self.db.execute(stmt).all()}

    def _viewer_post_ids(self, model: Type, viewer_id: int, post_ids: List[int]) -> Set[int]:
        stmt = select(model.post_id).where(model.user_id == viewer_id, model.post_id.in_(post_ids))
        return set(self.db.execute(stmt).scalars().all())

    def enrich(self, posts: List[Post], viewer_id: Optional[int] = None) -> List[PostWithDetails]:
        """Attach counts and, for a known viewer, like/save/follow flags to ``posts``."""
        if not posts:
            return []

        post_ids = [post.id for post in posts]
        like_counts = self._count_by_post(Like, post_ids)
        comment_counts = self._count_by_post(Comment, post_ids)

        flags = None
        if viewer_id is not None:
            flags = (
                self._viewer_post_ids(Like, viewer_id, post_ids),
                self._viewer_post_ids(SavedPost, viewer_id, post_ids),
                self._viewer_post_ids(FollowedPost, viewer_id, post_ids),
            )

        enriched = []
        for post in posts:
            details = PostWithDetails(
                id=post.id,
                uuid=post.uuid,
                title=post.title,
                description=post.description,
                category=CategorySummary.model_validate(post.category),
                subcategory=SubcategorySummary.model_validate(post.subcategory) if post.subcategory else None,
                location=post.location,
                location_details=post.location_details,
                image_url=post.image_url,
                visibility=post.visibility,
                metadata=post.post_metadata,
                view_count=post.view_count,
                created_at=post.created_at,
                updated_at=post.updated_at,
                user=UserSummary.model_validate(post.author),
                like_count=like_counts.get(post.id, 0),
                comment_count=comment_counts.get(post.id, 0),
            )
            if flags is not None:
                liked, saved, followed = flags
                details.is_liked = post.id in liked
                details.is_saved = post.id in saved
                details.is_followed = post.id in followed
            enriched.append(details)
        return enriched

    # ============ Queries ============

    def _base_query(self):
        return select(Post).options(
            joinedload(Post.author),
            joinedload(Post.category),
            joinedload(Post.subcategory),
        )

    def _paginate(self, conditions: list, page: int, limit: int, viewer_id: Optional[int]) -> Page[PostWithDetails]:
        total = self.db.execute(
            select(func.count()).select_from(Post).where(*conditions)
        ).scalar_one()

        stmt = (
            self._base_query()
            .where(*conditions)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        posts = list(self.db.execute(stmt).scalars().all())

        return Page[PostWithDetails](
            data=self.enrich(posts, viewer_id),
            meta=PaginationMeta(
                total=total,
                page=page,
                limit=limit,
                total_pages=math.ceil(total / limit),
            ),
        )

    def get_posts(self, filters: PostFilterParams, viewer_id: Optional[int] = None) -> Page[PostWithDetails]:
        """
        Return one page of posts matching ``filters``, newest first.

        Without an owner filter only public posts are listed. An unknown
        category name does not restrict the results.
        """
        conditions = []

        if filters.category:
            category = CategoryService(self.db).get_category_by_name(filters.category)
            if category is not None:
                conditions.append(Post.category_id == category.id)
            else:
                logger.warning("Ignoring unknown category filter", category=filters.category)

        if filters.location is not None:
            conditions.append(Post.location == filters.location)

        if filters.user_id is not None:
            conditions.append(Post.user_id == filters.user_id)
        else:
            conditions.append(Post.visibility == VisibilityEnum.public)

        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(or_(Post.title.ilike(pattern), Post.description.ilike(pattern)))

        return self._paginate(conditions, filters.page, filters.limit, viewer_id)

    def _get_related_posts(self, model: Type, user_id: int, page: int, limit: int) -> Page[PostWithDetails]:
        post_ids = self.db.execute(
            select(model.post_id).where(model.user_id == user_id)
        ).scalars().all()
        if not post_ids:
            return empty_page(page, limit)
        return self._paginate([Post.id.in_(post_ids)], page, limit, viewer_id=user_id)

    def get_saved_posts(self, user_id: int, page: int = 1, limit: int = 10) -> Page[PostWithDetails]:
        return self._get_related_posts(SavedPost, user_id, page, limit)

    def get_followed_posts(self, user_id: int, page: int = 1, limit: int = 10) -> Page[PostWithDetails]:
        return self._get_related_posts(FollowedPost, user_id, page, limit)

    def get_post(self, post_uuid: str) -> Post:
        post = self.db.execute(
            self._base_query().where(Post.uuid == post_uuid)
        ).scalar_one_or_none()
        if post is None:
            raise ResourceNotFoundException("Post not found")
        return post

    def get_post_id(self, post_uuid: str) -> int:
        post_id = self.db.execute(select(Post.id).where(Post.uuid == post_uuid)).scalar_one_or_none()
        if post_id is None:
            raise ResourceNotFoundException("Post not found")
        return post_id

    def get_post_details(self, post_uuid: str, viewer_id: Optional[int] = None) -> PostWithDetails:
        return self.enrich([self.get_post(post_uuid)], viewer_id)[0]

    def view_post(self, post_uuid: str, viewer_id: Optional[int] = None) -> PostWithDetails:
        """
        Record a view and return the post.

        Every call counts, including the owner's own and anonymous ones. The
        returned post reflects this view.
        """
        result = self.db.execute(
            update(Post)
            .where(Post.uuid == post_uuid)
            .values(view_count=Post.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise ResourceNotFoundException("Post not found")
        self.db.commit()
        return self.get_post_details(post_uuid, viewer_id)

    # ============ Mutations ============

    def _validate_taxonomy(self, category_id: int, subcategory_id: Optional[int]) -> None:
        if self.db.get(Category, category_id) is None:
            raise ValidationException(
                "Validation error",
                errors={"categoryId": ["Category does not exist"]}
            )
        if subcategory_id is None:
            return
        subcategory = self.db.get(Subcategory, subcategory_id)
        if subcategory is None:
            raise ValidationException(
                "Validation error",
                errors={"subcategoryId": ["Subcategory does not exist"]}
            )
        if subcategory.category_id != category_id:
            raise ValidationException(
                "Validation error",
                errors={"subcategoryId": ["Subcategory does not belong to the selected category"]}
            )

    def create_post(self, user_id: int, data: PostCreate) -> PostWithDetails:
        self._validate_taxonomy(data.category_id, data.subcategory_id)

        post = Post(
            user_id=user_id,
            title=data.title,
            description=data.description,
            category_id=data.category_id,
            subcategory_id=data.subcategory_id,
            location=data.location,
            location_details=data.location_details,
            image_url=str(data.image_url) if data.image_url else None,
            visibility=data.visibility,
            post_metadata=data.metadata,
            view_count=0,
        )
        self.db.add(post)
        self.db.commit()
        logger.info("Post created", post_id=post.id, user_id=user_id)
        return self.get_post_details(post.uuid, viewer_id=user_id)

    def _get_owned_post(self, post_uuid: str, user_id: int, action: str) -> Post:
        post = self.get_post(post_uuid)
        if post.user_id != user_id:
            logger.warning("Post ownership check failed", post_id=post.id, user_id=user_id, action=action)
            raise AuthorizationException(f"You can only {action} your own posts")
        return post

    def update_post(self, post_uuid: str, user_id: int, data: PostUpdate) -> PostWithDetails:
        post = self._get_owned_post(post_uuid, user_id, "update")

        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_UPDATE_FIELDS
        }
        if "category_id" in changes or "subcategory_id" in changes:
            self._validate_taxonomy(
                changes.get("category_id", post.category_id),
                changes.get("subcategory_id", post.subcategory_id),
            )
        if changes.get("image_url") is not None:
            changes["image_url"] = str(changes["image_url"])
        if "metadata" in changes:
            changes["post_metadata"] = changes.pop("metadata")

        for field, value in changes.items():
            setattr(post, field, value)
        post.updated_at = datetime.now(timezone.utc)

        self.db.commit()
        logger.info("Post updated", post_id=post.id, fields=sorted(changes))
        return self.get_post_details(post_uuid, viewer_id=user_id)

    def delete_post(self, post_uuid: str, user_id: int) -> None:
        post = self._get_owned_post(post_uuid, user_id, "delete")
        post_id = post.id
        self.db.delete(post)
        self.db.commit()
        logger.info("Post deleted", post_id=post_id, user_id=user_id)
