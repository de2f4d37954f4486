"""
Engagement Service for likes, saves and follows.

Each relation is a (user, post) row with a unique constraint. Adding an
existing relation returns it unchanged; removing a missing one is a no-op.
"""
from typing import Dict, Type, Union
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from models.models import Like, SavedPost, FollowedPost
from core.logging import get_logger

logger = get_logger("engagement")

EngagementRow = Union[Like, SavedPost, FollowedPost]

ENGAGEMENT_MODELS: Dict[str, Type[EngagementRow]] = {
    "like": Like,
    "save": SavedPost,
    "follow": FollowedPost,
}


class EngagementService:
    """Idempotent toggles for the like, save and follow relations."""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, model: Type[EngagementRow], user_id: int, post_id: int):
        stmt = select(model).where(model.user_id == user_id, model.post_id == post_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def add(self, kind: str, user_id: int, post_id: int) -> EngagementRow:
        """Create the relation, or return the one that already exists."""
        model = ENGAGEMENT_MODELS[kind]
        existing = self._find(model, user_id, post_id)
        if existing is not None:
            return existing

        row = model(user_id=user_id, post_id=post_id)
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request inserted the same pair first
            self.db.rollback()
            existing = self._find(model, user_id, post_id)
            if existing is None:
                raise
            return existing

        self.db.refresh(row)
        logger.info("Engagement added", kind=kind, user_id=user_id, post_id=post_id)
        return row

    def remove(self, kind: str, user_id: int, post_id: int) -> bool:
        """Delete the relation if present. Always succeeds."""
        model = ENGAGEMENT_MODELS[kind]
        result = self.db.execute(
            delete(model).where(model.user_id == user_id, model.post_id == post_id)
        )
        self.db.commit()
        if result.rowcount:
            logger.info("Engagement removed", kind=kind, user_id=user_id, post_id=post_id)
        return True

    def like(self, user_id: int, post_id: int) -> Like:
        return self.add("like", user_id, post_id)

    def unlike(self, user_id: int, post_id: int) -> bool:
        return self.remove("like", user_id, post_id)

    def save(self, user_id: int, post_id: int) -> SavedPost:
        return self.add("save", user_id, post_id)

    def unsave(self, user_id: int, post_id: int) -> bool:
        return self.remove("save", user_id, post_id)

    def follow(self, user_id: int, post_id: int) -> FollowedPost:
        return self.add("follow", user_id, post_id)

    def unfollow(self, user_id: int, post_id: int) -> bool:
        return self.remove("follow", user_id, post_id)
