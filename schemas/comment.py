"""
Pydantic schemas for post comments.
"""
from datetime import datetime
from pydantic import Field
from schemas.common import CamelModel
from schemas.user import UserSummary


class CommentCreate(CamelModel):
    content: str = Field(..., min_length=1, max_length=500)


class CommentRead(CamelModel):
    id: int
    post_id: int
    content: str
    created_at: datetime
    updated_at: datetime
    user: UserSummary
