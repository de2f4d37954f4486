"""
User Service for accounts, credentials and preferences.
"""
from typing import Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from models.models import User, UserPreference, VisibilityEnum, UserRoleEnum
from schemas.user import UserCreate, UserUpdate
from schemas.auth import ChangePasswordRequest
from core.config import settings
from core.exceptions import (
    AuthenticationException, AuthorizationException, ConflictException,
    ResourceNotFoundException, ValidationException
)
from core.logging import get_logger
from core.security import get_password_hash, verify_password

logger = get_logger("auth")


def default_preferences(user_id: Optional[int] = None) -> UserPreference:
    return UserPreference(
        user_id=user_id,
        selected_categories=list(settings.default_selected_categories),
        notification_preferences=dict(settings.default_notification_preferences),
    )


class UserService:
    """Service for user accounts and their preferences."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise ResourceNotFoundException("User not found")
        return user

    def get_by_uuid(self, user_uuid: str) -> User:
        user = self.db.execute(select(User).where(User.uuid == user_uuid)).scalar_one_or_none()
        if user is None:
            raise ResourceNotFoundException("User not found")
        return user

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    def username_taken(self, username: str) -> bool:
        stmt = select(User.id).where(User.username == username)
        return self.db.execute(stmt).first() is not None

    def create_user_with_preferences(self, user: User) -> User:
        """Persist a new user and its default preferences in one transaction."""
        user.preferences = default_preferences()
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def register(self, data: UserCreate) -> User:
        """
        Create a password account.

        Raises:
            ConflictException: If the username or the email is already in use
        """
        if self.username_taken(data.username):
            logger.warning("Registration failed - username already exists", username=data.username)
            raise ConflictException(
                "Username already exists",
                errors={"username": ["This username is already taken"]}
            )

        if self.get_by_email(data.email) is not None:
            logger.warning("Registration failed - email already exists", email=data.email)
            raise ConflictException(
                "Email already exists",
                errors={"email": ["This email is already registered"]}
            )

        user = User(
            username=data.username,
            email=data.email,
            password_hash=get_password_hash(data.password),
            name=data.name,
            phone=data.phone,
            location=data.location,
            visibility=data.visibility,
            role=UserRoleEnum.user,
            is_verified=False,
        )
        user = self.create_user_with_preferences(user)
        logger.info("User registered successfully", user_id=user.id, username=user.username)
        return user

    def authenticate(self, email: str, password: str) -> User:
        """
        Check email and password credentials.

        Raises:
            AuthenticationException: If the credentials do not match, or the
                account only supports social login
        """
        user = self.get_by_email(email)
        if user is None:
            logger.warning("Login failed - unknown email", email=email)
            raise AuthenticationException("Invalid email or password")

        if not user.password_hash:
            logger.warning("Login failed - social login account", user_id=user.id)
            raise AuthenticationException("Please use your social login method")

        if not verify_password(password, user.password_hash):
            logger.warning("Login failed - wrong password", user_id=user.id)
            raise AuthenticationException("Invalid email or password")

        logger.info("User logged in", user_id=user.id)
        return user

    def change_password(self, user_id: int, data: ChangePasswordRequest) -> None:
        user = self.get_by_id(user_id)

        if not user.password_hash:
            raise ValidationException("Social login users cannot change password")

        if not verify_password(data.current_password, user.password_hash):
            raise ValidationException(
                "Current password is incorrect",
                errors={"currentPassword": ["Current password is incorrect"]}
            )

        user.password_hash = get_password_hash(data.new_password)
        self.db.commit()
        logger.info("Password changed", user_id=user.id)

    def update_profile(self, user_id: int, data: UserUpdate) -> User:
        user = self.get_by_id(user_id)
        changes = data.model_dump(exclude_unset=True)
        if "profile_image" in changes and changes["profile_image"] is not None:
            changes["profile_image"] = str(changes["profile_image"])

        for field, value in changes.items():
            setattr(user, field, value)

        self.db.commit()
        self.db.refresh(user)
        logger.info("Profile updated", user_id=user.id, fields=sorted(changes))
        return user

    def get_public_profile(self, user_uuid: str, viewer_id: Optional[int]) -> User:
        """
        Return a user profile visible to ``viewer_id``.

        Raises:
            AuthorizationException: If the profile is private and the viewer is not its owner
        """
        user = self.get_by_uuid(user_uuid)
        if user.visibility == VisibilityEnum.private and user.id != viewer_id:
            raise AuthorizationException("This profile is private")
        return user

    # ============ Preferences ============

    def find_preferences(self, user_id: int) -> Optional[UserPreference]:
        stmt = select(UserPreference).where(UserPreference.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_preferences(self, user_id: int) -> UserPreference:
        """Return the user's preferences, creating the default row if it is missing."""
        preferences = self.find_preferences(user_id)
        if preferences is None:
            self.get_by_id(user_id)
            preferences = default_preferences(user_id)
            self.db.add(preferences)
            self.db.commit()
            self.db.refresh(preferences)
            logger.info("Default preferences created", user_id=user_id)
        return preferences

    def update_selected_categories(self, user_id: int, categories: List[str]) -> UserPreference:
        preferences = self.get_preferences(user_id)
        # Assign a new list so the JSON column is flagged as changed
        preferences.selected_categories = list(categories)
        self.db.commit()
        self.db.refresh(preferences)
        return preferences

    def update_notification_preferences(self, user_id: int, toggles: Dict[str, bool]) -> UserPreference:
        preferences = self.get_preferences(user_id)
        preferences.notification_preferences = dict(toggles)
        self.db.commit()
        self.db.refresh(preferences)
        return preferences
