"""Async user service.

Account listing and lookup, permission changes and account deletion. Deleting
an account keeps the denormalized counters of *other* rows consistent: the
posts the user liked lose one like each and the users they followed lose one
follower each, in the same transaction as the deletes.
"""

from typing import List

from sqlalchemy import case, delete, desc, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blogapi.models.comment import Comment
from blogapi.models.follow import Follow
from blogapi.models.like import Like
from blogapi.models.post import Post
from blogapi.models.user import Permission, User
from blogapi.services.async_error_handler import (
    NotFoundError,
    UnauthorizedError,
    async_transaction_rollback,
    handle_async_db_errors,
)
from blogapi.utils.logger import get_logger

user_logger = get_logger("USERS")


class AsyncUserService:
    """Async service for user accounts."""

    @staticmethod
    async def _get_user(db: AsyncSession, user_id: int, *, for_update: bool = False) -> User:
        stmt = select(User).where(User.id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    @handle_async_db_errors("user listing")
    async def list_users(db: AsyncSession, limit: int = 50, offset: int = 0) -> List[User]:
        result = await db.execute(select(User).order_by(User.id).offset(offset).limit(limit))
        return list(result.scalars().all())

    @classmethod
    @handle_async_db_errors("user retrieval")
    async def get_user(cls, db: AsyncSession, user_id: int) -> User:
        return await cls._get_user(db, user_id)

    @classmethod
    @handle_async_db_errors("user posts listing")
    async def get_user_posts(
        cls,
        db: AsyncSession,
        user_id: int,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Post]:
        """Get posts by a specific user, newest first."""
        await cls._get_user(db, user_id)
        result = await db.execute(
            select(Post)
            .options(selectinload(Post.author))
            .where(Post.author_id == user_id)
            .order_by(desc(Post.created_at), desc(Post.id))
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    @classmethod
    @handle_async_db_errors("permission update")
    async def update_permission(
        cls,
        db: AsyncSession,
        user_id: int,
        permission: Permission,
        acting_user: User,
    ) -> User:
        """Set a user's permission level (administrators only)."""
        if not acting_user.is_administrator:
            raise UnauthorizedError("Only administrators can change permissions")

        async with async_transaction_rollback(db):
            user = await cls._get_user(db, user_id, for_update=True)
            user.permission = int(permission)

        user_logger.info("Permission updated", user_id=user_id, permission=Permission(permission).name, by=acting_user.id)
        return user

    @classmethod
    @handle_async_db_errors("user deletion")
    async def delete_user(cls, db: AsyncSession, user_id: int, acting_user: User) -> None:
        """Delete an account and everything it owns (the user or an administrator)."""
        if acting_user.id != user_id and not acting_user.is_administrator:
            raise UnauthorizedError("You can only delete your own account")

        async with async_transaction_rollback(db):
            user = await cls._get_user(db, user_id, for_update=True)

            # A user likes a post at most once and follows a user at most once,
            # so each affected counter drops by exactly one
            liked_posts = select(Like.post_id).where(Like.user_id == user_id)
            await db.execute(
                update(Post)
                .where(Post.id.in_(liked_posts), Post.author_id != user_id)
                .values(likes_count=case((Post.likes_count > 0, Post.likes_count - 1), else_=0))
                .execution_options(synchronize_session=False)
            )
            followed_users = select(Follow.following_id).where(Follow.follower_id == user_id)
            await db.execute(
                update(User)
                .where(User.id.in_(followed_users))
                .values(followers=case((User.followers > 0, User.followers - 1), else_=0))
                .execution_options(synchronize_session=False)
            )

            own_posts = select(Post.id).where(Post.author_id == user_id)
            await db.execute(
                delete(Like)
                .where(or_(Like.user_id == user_id, Like.post_id.in_(own_posts)))
                .execution_options(synchronize_session=False)
            )
            await db.execute(
                delete(Comment)
                .where(or_(Comment.author_id == user_id, Comment.post_id.in_(own_posts)))
                .execution_options(synchronize_session=False)
            )
            await db.execute(
                delete(Follow)
                .where(or_(Follow.follower_id == user_id, Follow.following_id == user_id))
                .execution_options(synchronize_session=False)
            )
            await db.execute(
                delete(Post).where(Post.author_id == user_id).execution_options(synchronize_session=False)
            )
            await db.delete(user)

        user_logger.info("User deleted", user_id=user_id, by=acting_user.id)
