"""
Database models for the application.
"""
import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Text, ForeignKey, Enum as SAEnum,
    UniqueConstraint, Index, JSON
)
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from db_config import Base

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())


# --- ENUM Types (mirroring PostgreSQL ENUMs) ---
class UserRoleEnum(enum.Enum):
    user = "user"
    admin = "admin"

class VisibilityEnum(enum.Enum):
    public = "public"
    private = "private"

class LocationEnum(enum.Enum):
    amritsar = "amritsar"
    jalandhar = "jalandhar"
    ludhiana = "ludhiana"
    chandigarh = "chandigarh"
    gurugram = "gurugram"

class PostCategoryEnum(enum.Enum):
    announcement = "announcement"
    event = "event"
    traffic_alert = "traffic_alert"
    looking_for = "looking_for"
    rental_to_let = "rental_to_let"
    reviews = "reviews"
    recommendations = "recommendations"
    news = "news"
    citizen_reporter = "citizen_reporter"
    community_services = "community_services"
    health_capsule = "health_capsule"
    science_knowledge = "science_knowledge"
    article = "article"
    jobs = "jobs"
    help = "help"
    sale = "sale"
    property = "property"
    rental_required = "rental_required"
    promotion = "promotion"
    page_3 = "page_3"


def _enum_column(enum_cls, name: str):
    return SAEnum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


# --- Model Definitions ---

# Users and preferences
class User(Base):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, index=True, default=new_uuid)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)  # NULL for social-login-only accounts
    google_id = Column(String(255), nullable=True, unique=True)
    apple_id = Column(String(255), nullable=True, unique=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    profile_image = Column(Text, nullable=True)
    role = Column(_enum_column(UserRoleEnum, "user_role_enum"), nullable=False, default=UserRoleEnum.user)
    visibility = Column(_enum_column(VisibilityEnum, "visibility_enum"), nullable=False, default=VisibilityEnum.public)
    location = Column(_enum_column(LocationEnum, "location_enum"), nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    preferences = relationship("UserPreference", back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    posts = relationship("Post", back_populates="author", cascade="all, delete-orphan", passive_deletes=True)
    comments = relationship("Comment", back_populates="author", cascade="all, delete-orphan", passive_deletes=True)
    likes = relationship("Like", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    saved_posts = relationship("SavedPost", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    followed_posts = relationship("FollowedPost", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

class UserPreference(Base):
    __tablename__ = "user_preference"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, unique=True)
    selected_categories = Column(JSONType, nullable=False, default=list)  # ordered list of category names
    notification_preferences = Column(JSONType, nullable=False, default=dict)  # open name -> bool map
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    user = relationship("User", back_populates="preferences")


# Taxonomy
class Category(Base):
    __tablename__ = "category"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(_enum_column(PostCategoryEnum, "post_category_enum"), nullable=False, unique=True)
    display_name = Column(String(100), nullable=False)
    icon = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    subcategories = relationship("Subcategory", back_populates="category", cascade="all, delete-orphan", passive_deletes=True)

class Subcategory(Base):
    __tablename__ = "subcategory"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("category.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    display_name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    category = relationship("Category", back_populates="subcategories")

    __table_args__ = (UniqueConstraint("category_id", "name", name="uq_subcategory_category_name"),)


# Posts and engagement
class Post(Base):
    __tablename__ = "post"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, index=True, default=new_uuid)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    category_id = Column(Integer, ForeignKey("category.id"), nullable=False)
    subcategory_id = Column(Integer, ForeignKey("subcategory.id"), nullable=True)
    location = Column(_enum_column(LocationEnum, "location_enum"), nullable=False)
    location_details = Column(String(100), nullable=True)
    image_url = Column(Text, nullable=True)
    visibility = Column(_enum_column(VisibilityEnum, "visibility_enum"), nullable=False, default=VisibilityEnum.public)
    # "metadata" is reserved on declarative classes
    post_metadata = Column("metadata", JSONType, nullable=True)  # open str -> str map: price, date, time, model
    view_count = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    author = relationship("User", back_populates="posts")
    category = relationship("Category")
    subcategory = relationship("Subcategory")
    comments = relationship("Comment", back_populates="post", cascade="all, delete-orphan", passive_deletes=True)
    likes = relationship("Like", back_populates="post", cascade="all, delete-orphan", passive_deletes=True)
    saves = relationship("SavedPost", back_populates="post", cascade="all, delete-orphan", passive_deletes=True)
    follows = relationship("FollowedPost", back_populates="post", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index("idx_post_created_at", "created_at"),
        Index("idx_post_location_visibility", "location", "visibility"),
    )

class Comment(Base):
    __tablename__ = "comment"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("post.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    content = Column(String(500), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    post = relationship("Post", back_populates="comments")
    author = relationship("User", back_populates="comments")

class Like(Base):
    __tablename__ = "post_like"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("post.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    post = relationship("Post", back_populates="likes")
    user = relationship("User", back_populates="likes")

    __table_args__ = (UniqueConstraint("user_id", "post_id", name="uq_post_like_user_post"),)

class SavedPost(Base):
    __tablename__ = "saved_post"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("post.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    post = relationship("Post", back_populates="saves")
    user = relationship("User", back_populates="saved_posts")

    __table_args__ = (UniqueConstraint("user_id", "post_id", name="uq_saved_post_user_post"),)

class FollowedPost(Base):
    __tablename__ = "followed_post"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("post.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    post = relationship("Post", back_populates="follows")
    user = relationship("User", back_populates="followed_posts")

    __table_args__ = (UniqueConstraint("user_id", "post_id", name="uq_followed_post_user_post"),)


# OAuth handshake state, used when OAUTH_STATE_BACKEND=database
class OAuthState(Base):
    __tablename__ = "oauth_state"

    state = Column(String(128), primary_key=True)
    provider = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
