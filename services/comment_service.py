"""
Comment Service for post comments.
"""
from typing import List
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload
from models.models import Comment
from schemas.comment import CommentRead
from schemas.user import UserSummary
from core.exceptions import ResourceNotFoundException
from core.logging import get_logger

logger = get_logger("comments")


def comment_to_read(comment: Comment) -> CommentRead:
    """Convert a Comment row to its read schema with author details."""
    return CommentRead(
        id=comment.id,
        post_id=comment.post_id,
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        user=UserSummary.model_validate(comment.author),
    )


class CommentService:
    """Service for listing, creating and deleting comments on a post."""

    def __init__(self, db: Session):
        self.db = db

    def list_comments(self, post_id: int) -> List[CommentRead]:
        stmt = (
            select(Comment)
            .options(joinedload(Comment.author))
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at, Comment.id)
        )
        return [comment_to_read(c) for c in self.db.execute(stmt).scalars().all()]

    def create_comment(self, post_id: int, user_id: int, content: str) -> CommentRead:
        comment = Comment(post_id=post_id, user_id=user_id, content=content)
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        logger.info("Comment created", comment_id=comment.id, post_id=post_id, user_id=user_id)
        return comment_to_read(comment)

    def delete_comment(self, post_id: int, comment_id: int, user_id: int) -> None:
        """
        Delete a comment written by ``user_id`` on ``post_id``.

        Raises:
            ResourceNotFoundException: If no such comment exists for this author and post
        """
        stmt = select(Comment).where(
            Comment.id == comment_id,
            Comment.post_id == post_id,
            Comment.user_id == user_id
        )
        comment = self.db.execute(stmt).scalar_one_or_none()
        if comment is None:
            raise ResourceNotFoundException("Comment not found or you do not have permission to delete it")

        self.db.delete(comment)
        self.db.commit()
        logger.info("Comment deleted", comment_id=comment_id, post_id=post_id, user_id=user_id)
