"""Database models."""

# Import all models here to ensure they're recognized by SQLAlchemy
from blogapi.models.comment import Comment
from blogapi.models.follow import Follow
from blogapi.models.like import Like
from blogapi.models.post import Post
from blogapi.models.user import Permission, User

__all__ = [
    "User",
    "Permission",
    "Post",
    "Like",
    "Follow",
    "Comment",
]
