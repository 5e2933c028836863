"""Async post service.

Posting, liking and the post read paths. Every mutating operation runs as a
single transaction; the ``likes_count`` counter is only ever changed with a
server-side ``likes_count +/- 1`` in the same transaction as the Like row it
accounts for.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import case, delete, desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from blogapi.core.config import settings
from blogapi.models.comment import Comment
from blogapi.models.like import Like
from blogapi.models.post import Post
from blogapi.models.user import User
from blogapi.schemas.post import PostCreate, PostUpdate
from blogapi.services.async_error_handler import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    async_transaction_rollback,
    handle_async_db_errors,
    is_unique_violation,
)
from blogapi.services.rss import FeedService
from blogapi.utils.logger import engagement_logger


@dataclass
class PostDetailResult:
    """A post plus the engagement metadata that is not stored on its row."""

    post: Post
    comments: List[Comment] = field(default_factory=list)
    liker_ids: List[int] = field(default_factory=list)
    has_liked: bool = False
    comment_count: int = 0


class AsyncPostService:
    """Async service for post-related operations."""

    feed_service = FeedService()

    @staticmethod
    async def _get_post(
        db: AsyncSession,
        post_id: int,
        *,
        for_update: bool = False,
        with_author: bool = False,
    ) -> Post:
        stmt = select(Post).where(Post.id == post_id)
        if with_author:
            stmt = stmt.options(selectinload(Post.author)).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError("Post not found")
        return post

    @staticmethod
    async def _shift_likes_count(db: AsyncSession, post: Post, delta: int) -> int:
        """Apply ``delta`` to the stored counter, clamped at zero, and return the new value."""
        shifted = Post.likes_count + delta
        await db.execute(
            update(Post)
            .where(Post.id == post.id)
            .values(likes_count=case((shifted < 0, 0), else_=shifted))
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(select(Post.likes_count).where(Post.id == post.id))
        likes_count = result.scalar_one()
        set_committed_value(post, "likes_count", likes_count)
        return likes_count

    @staticmethod
    @handle_async_db_errors("post listing")
    async def list_posts(
        db: AsyncSession,
        limit: Optional[int] = None,
        page: Optional[int] = None,
    ) -> List[Post]:
        """
        Posts, newest first.

        ``limit`` alone returns the first ``limit`` posts; with ``page`` the
        window starts at ``limit * page``. Without ``limit`` every post is
        returned and ``page`` is ignored.
        """
        stmt = (
            select(Post)
            .options(selectinload(Post.author))
            .order_by(desc(Post.created_at), desc(Post.id))
        )
        if limit:
            if page:
                stmt = stmt.offset(limit * page)
            stmt = stmt.limit(limit)

        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    @handle_async_db_errors("post retrieval")
    async def get_post_detail(
        cls,
        db: AsyncSession,
        post_id: int,
        requesting_user: Optional[User] = None,
    ) -> PostDetailResult:
        """Load a post with its author, first comments, likers and live comment count."""
        post = await cls._get_post(db, post_id, with_author=True)

        comments_result = await db.execute(
            select(Comment)
            .options(selectinload(Comment.author))
            .where(Comment.post_id == post.id)
            .order_by(Comment.created_at, Comment.id)
            .limit(settings.POST_DETAIL_COMMENT_LIMIT)
        )
        likers_result = await db.execute(
            select(Like.user_id).where(Like.post_id == post.id).order_by(Like.created_at, Like.id)
        )
        count_result = await db.execute(
            select(func.count(Comment.id)).where(Comment.post_id == post.id)
        )

        liker_ids = list(likers_result.scalars().all())
        return PostDetailResult(
            post=post,
            comments=list(comments_result.scalars().all()),
            liker_ids=liker_ids,
            has_liked=requesting_user is not None and requesting_user.id in liker_ids,
            comment_count=count_result.scalar() or 0,
        )

    @classmethod
    @handle_async_db_errors("post creation")
    async def create_post(cls, db: AsyncSession, author: User, data: PostCreate) -> Post:
        """Create a post, then refresh the RSS feed outside the creating transaction."""
        post = Post(
            author=author,
            content=data.content,
            tags=data.tags,
            image=data.image,
            likes_count=0,
        )
        async with async_transaction_rollback(db):
            db.add(post)

        engagement_logger.info("Post created", post_id=post.id, author_id=author.id)

        await cls.feed_service.regenerate_safely(db)
        return post

    @classmethod
    @handle_async_db_errors("post update")
    async def update_post(
        cls,
        db: AsyncSession,
        post_id: int,
        acting_user: User,
        data: PostUpdate,
    ) -> Post:
        """Update content, image and/or tags (author or moderator only)."""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        async with async_transaction_rollback(db):
            post = await cls._get_post(db, post_id, for_update=True)
            if not post.has_permission(acting_user):
                raise UnauthorizedError("You do not have permission to modify this post")

            for name, value in changes.items():
                setattr(post, name, value)

        engagement_logger.info("Post updated", post_id=post_id, user_id=acting_user.id, fields=sorted(changes))
        return post

    @classmethod
    @handle_async_db_errors("post deletion")
    async def delete_post(cls, db: AsyncSession, post_id: int, acting_user: User) -> None:
        """Delete a post with its likes and comments (author or moderator only)."""
        async with async_transaction_rollback(db):
            post = await cls._get_post(db, post_id, for_update=True)
            if not post.has_permission(acting_user):
                raise UnauthorizedError("You are not the author of this post")

            await db.execute(delete(Like).where(Like.post_id == post.id))
            await db.execute(delete(Comment).where(Comment.post_id == post.id))
            await db.execute(delete(Post).where(Post.id == post.id).execution_options(synchronize_session=False))

        engagement_logger.info("Post deleted", post_id=post_id, user_id=acting_user.id)

    @classmethod
    @handle_async_db_errors("post like")
    async def like_post(cls, db: AsyncSession, post_id: int, user: User) -> int:
        """
        Like a post and return its new ``likes_count``.

        The post row is locked for the duration of the transaction, so the
        existence check, the insert and the increment are serialized per post.
        The unique constraint on (user_id, post_id) catches anything that
        still slips through.
        """
        try:
            async with async_transaction_rollback(db):
                post = await cls._get_post(db, post_id, for_update=True)

                existing = await db.execute(
                    select(Like.id).where(Like.user_id == user.id, Like.post_id == post.id)
                )
                if existing.first() is not None:
                    raise ConflictError("You have already liked this post")

                db.add(Like(user_id=user.id, post_id=post.id))
                await db.flush()
                likes_count = await cls._shift_likes_count(db, post, 1)
        except IntegrityError as e:
            if not is_unique_violation(e, Like, "uq_likes_user_post"):
                raise
            raise ConflictError("You have already liked this post")

        engagement_logger.info("Post liked", post_id=post_id, user_id=user.id, likes_count=likes_count)
        return likes_count

    @classmethod
    @handle_async_db_errors("post unlike")
    async def unlike_post(cls, db: AsyncSession, post_id: int, user: User) -> int:
        """Remove a like and return the post's new ``likes_count``."""
        async with async_transaction_rollback(db):
            post = await cls._get_post(db, post_id, for_update=True)

            result = await db.execute(
                delete(Like)
                .where(Like.user_id == user.id, Like.post_id == post.id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConflictError("You have not liked this post")

            likes_count = await cls._shift_likes_count(db, post, -1)

        engagement_logger.info("Post unliked", post_id=post_id, user_id=user.id, likes_count=likes_count)
        return likes_count
