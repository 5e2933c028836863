from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blogapi.models.comment import Comment
from blogapi.models.post import Post
from blogapi.models.user import User
from blogapi.services.async_error_handler import (
    NotFoundError,
    async_transaction_rollback,
    handle_async_db_errors,
)
from blogapi.utils.logger import engagement_logger


class AsyncCommentService:
    """Async service for comment operations."""

    @staticmethod
    async def _ensure_post(db: AsyncSession, post_id: int) -> None:
        result = await db.execute(select(Post.id).where(Post.id == post_id))
        if result.first() is None:
            raise NotFoundError("Post not found")

    @classmethod
    @handle_async_db_errors("comment creation")
    async def create_comment(
        cls,
        db: AsyncSession,
        post_id: int,
        author: User,
        content: str,
    ) -> Comment:
        """Create a comment on a post."""
        comment = Comment(post_id=post_id, author=author, content=content)

        async with async_transaction_rollback(db):
            await cls._ensure_post(db, post_id)
            db.add(comment)

        engagement_logger.info("Comment created", post_id=post_id, comment_id=comment.id, author_id=author.id)
        return comment

    @classmethod
    @handle_async_db_errors("comment listing")
    async def get_post_comments(
        cls,
        db: AsyncSession,
        post_id: int,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Comment]:
        """Get comments for a specific post, oldest first."""
        await cls._ensure_post(db, post_id)
        result = await db.execute(
            select(Comment)
            .options(selectinload(Comment.author))
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at, Comment.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())
