"""Post schemas.

Length bounds are enforced here, before a request reaches the post service.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from blogapi.schemas.base import BaseSchema, InputSchema
from blogapi.schemas.comment import CommentResponse
from blogapi.schemas.user import UserPublic

# Fields a post update may touch; anything else in the body is ignored
POST_UPDATABLE_FIELDS = ("content", "image", "tags")


class PostCreate(InputSchema):
    content: str = Field(..., min_length=200, max_length=10000)
    tags: str = Field(..., min_length=1, max_length=15)
    image: str = Field(..., min_length=3, max_length=100)


class PostUpdate(InputSchema):
    content: Optional[str] = Field(None, min_length=200, max_length=10000)
    tags: Optional[str] = Field(None, min_length=1, max_length=15)
    image: Optional[str] = Field(None, min_length=3, max_length=100)


class PostSummary(BaseSchema):
    """List view of a post: comments are left out."""

    id: int
    content: str
    tags: str
    image: str
    likes_count: int
    created_at: datetime
    updated_at: datetime
    author: UserPublic


class PostDetail(PostSummary):
    comments: List[CommentResponse] = []
    likes: List[int] = []  # ids of users who liked the post


class LikeCountResponse(BaseModel):
    likes_count: int
