from datetime import datetime

from pydantic import Field

from blogapi.schemas.base import BaseSchema, InputSchema
from blogapi.schemas.user import UserPublic


class CommentCreate(InputSchema):
    content: str = Field(..., min_length=1, max_length=1000)


class CommentResponse(BaseSchema):
    id: int
    post_id: int
    content: str
    created_at: datetime
    author: UserPublic
