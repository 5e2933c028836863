from typing import List

from sqlalchemy import case, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from blogapi.models.follow import Follow
from blogapi.models.user import User
from blogapi.services.async_error_handler import (
    BadInputError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    async_transaction_rollback,
    handle_async_db_errors,
    is_unique_violation,
)
from blogapi.schemas.validation import FieldError
from blogapi.utils.logger import engagement_logger


class AsyncFollowService:
    """Async service for follow edges and the ``User.followers`` counter."""

    @staticmethod
    def _check_actor(acting_user: User, follower_id: int) -> None:
        if acting_user.id != follower_id and not acting_user.is_administrator:
            raise UnauthorizedError("You can only manage your own follows")

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
    async def _shift_followers(db: AsyncSession, user: User, delta: int) -> int:
        shifted = User.followers + delta
        await db.execute(
            update(User)
            .where(User.id == user.id)
            .values(followers=case((shifted < 0, 0), else_=shifted))
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(select(User.followers).where(User.id == user.id))
        followers = result.scalar_one()
        set_committed_value(user, "followers", followers)
        return followers

    @classmethod
    @handle_async_db_errors("follow")
    async def follow(
        cls,
        db: AsyncSession,
        follower_id: int,
        following_id: int,
        acting_user: User,
    ) -> int:
        """Create the edge follower -> following and return the new follower count."""
        cls._check_actor(acting_user, follower_id)
        if follower_id == following_id:
            raise BadInputError(
                "You cannot follow yourself",
                [FieldError(field="following_id", message="must differ from follower_id")],
            )

        try:
            async with async_transaction_rollback(db):
                await cls._get_user(db, follower_id)
                followed = await cls._get_user(db, following_id, for_update=True)

                existing = await db.execute(
                    select(Follow.id).where(
                        Follow.follower_id == follower_id,
                        Follow.following_id == following_id,
                    )
                )
                if existing.first() is not None:
                    raise ConflictError("You already follow this user")

                db.add(Follow(follower_id=follower_id, following_id=following_id))
                await db.flush()
                followers = await cls._shift_followers(db, followed, 1)
        except IntegrityError as e:
            if not is_unique_violation(e, Follow, "uq_follows_follower_following"):
                raise
            raise ConflictError("You already follow this user")

        engagement_logger.info("User followed", follower_id=follower_id, following_id=following_id, followers=followers)
        return followers

    @classmethod
    @handle_async_db_errors("unfollow")
    async def unfollow(
        cls,
        db: AsyncSession,
        follower_id: int,
        following_id: int,
        acting_user: User,
    ) -> int:
        """Remove the edge follower -> following and return the new follower count."""
        cls._check_actor(acting_user, follower_id)

        async with async_transaction_rollback(db):
            await cls._get_user(db, follower_id)
            followed = await cls._get_user(db, following_id, for_update=True)

            result = await db.execute(
                delete(Follow)
                .where(Follow.follower_id == follower_id, Follow.following_id == following_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConflictError("You do not follow this user")

            followers = await cls._shift_followers(db, followed, -1)

        engagement_logger.info("User unfollowed", follower_id=follower_id, following_id=following_id, followers=followers)
        return followers

    @classmethod
    @handle_async_db_errors("follower listing")
    async def get_followers(cls, db: AsyncSession, user_id: int) -> List[User]:
        """Users following ``user_id``."""
        await cls._get_user(db, user_id)
        result = await db.execute(
            select(User)
            .join(Follow, Follow.follower_id == User.id)
            .where(Follow.following_id == user_id)
            .order_by(Follow.created_at, Follow.id)
        )
        return list(result.scalars().all())

    @classmethod
    @handle_async_db_errors("following listing")
    async def get_following(cls, db: AsyncSession, user_id: int) -> List[User]:
        """Users ``user_id`` follows."""
        await cls._get_user(db, user_id)
        result = await db.execute(
            select(User)
            .join(Follow, Follow.following_id == User.id)
            .where(Follow.follower_id == user_id)
            .order_by(Follow.created_at, Follow.id)
        )
        return list(result.scalars().all())
