"""
Async test utilities and helper functions.

Record counting and assertions against the test database, plus a small data
factory for users and posts.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Type, TypeVar

from sqlalchemy import Select, false, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogapi.models.post import Post
from blogapi.models.user import Permission, User
from blogapi.services.async_auth import AsyncAuthService
from tests.utils_jwt import generate_test_jwt

T = TypeVar('T')

TEST_PASSWORD = "correct-horse-battery"
TEST_PASSWORD_HASH = AsyncAuthService.get_password_hash(TEST_PASSWORD)


def make_content(seed: str = "post", length: int = 240) -> str:
    """Post body long enough to pass the content length check."""
    text = f"{seed} " + "lorem ipsum dolor sit amet " * (length // 20 + 1)
    return text[:length]


def auth_header_for(user: User) -> Dict[str, str]:
    """Authorization header with a valid JWT for ``user``."""
    return {"Authorization": f"Bearer {generate_test_jwt(user_id=user.id)}"}


def hide_existing_rows(session: AsyncSession, monkeypatch, model_class) -> None:
    """
    Make ``select(model_class.id)`` lookups on ``session`` come back empty.

    Simulates a competing transaction that commits its row after the
    service has checked for one.
    """
    execute = session.execute

    async def execute_without_rows(statement, *args, **kwargs):
        if isinstance(statement, Select):
            described = statement.column_descriptions[0]
            if described["entity"] is model_class and described["name"] == "id":
                statement = statement.where(false())
        return await execute(statement, *args, **kwargs)

    monkeypatch.setattr(session, "execute", execute_without_rows)


class AsyncDatabaseTestUtils:
    """Utility class for async database testing operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_records(self, model_class: Type[T], **filters) -> int:
        """Count records in a table with optional filters."""
        stmt = select(func.count()).select_from(model_class)
        if filters:
            stmt = stmt.where(*[getattr(model_class, key) == value for key, value in filters.items()])
        result = await self.session.execute(stmt)
        return result.scalar()

    async def assert_record_count(self, model_class: Type[T], expected_count: int, **filters):
        """Assert the number of records in a table."""
        actual_count = await self.count_records(model_class, **filters)
        assert actual_count == expected_count, f"Expected {expected_count} records, found {actual_count}"

    async def column_value(self, column, **filters) -> Any:
        """Read one column straight from the database, bypassing the identity map."""
        model_class = column.class_
        stmt = select(column).where(*[getattr(model_class, key) == value for key, value in filters.items()])
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class AsyncTestDataFactory:
    """Creates committed test rows, each in its own short-lived session."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def create_user(self, username: str, permission: Permission = Permission.MEMBER, **overrides) -> User:
        """Create a user whose password is ``TEST_PASSWORD``."""
        data = {
            "username": username,
            "email": f"{username}@example.com",
            "hashed_password": TEST_PASSWORD_HASH,
            "permission": int(permission),
        }
        data.update(overrides)

        async with self.session_factory() as session:
            user = User(**data)
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    async def create_post(
        self,
        author: User,
        seed: str = "post",
        created_at: Optional[datetime] = None,
        **overrides,
    ) -> Post:
        data = {
            "author_id": author.id,
            "content": make_content(seed),
            "tags": "python",
            "image": "https://img.example.com/cover.png",
            "likes_count": 0,
        }
        if created_at is not None:
            data["created_at"] = created_at
        data.update(overrides)

        async with self.session_factory() as session:
            post = Post(**data)
            session.add(post)
            await session.commit()
            await session.refresh(post)
            return post

    async def create_record(self, model_class: Type[T], **kwargs) -> T:
        """Create and commit any model row, bypassing the services."""
        async with self.session_factory() as session:
            record = model_class(**kwargs)
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record
