from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.core.config import settings
from blogapi.db.async_session import get_async_db
from blogapi.models.user import User
from blogapi.schemas.auth import TokenPayload, UserRegister
from blogapi.services.async_error_handler import (
    ConflictError,
    async_transaction_rollback,
    handle_async_db_errors,
)
from blogapi.utils.logger import auth_logger

# OAuth2 scheme for async authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/token")

# Same scheme for endpoints that also serve anonymous callers
optional_oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/token", auto_error=False
)


class AsyncAuthService:
    """
    Async authentication service: password hashing, access tokens and
    resolution of the current user from a bearer token.
    """

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a hash."""
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Hash a password for storage."""
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
        return hashed.decode('utf-8')

    @classmethod
    def create_access_token(cls, user_id: int, expires_delta: timedelta = None) -> str:
        """Create a new JWT access token."""
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        expire = datetime.now(timezone.utc) + expires_delta
        to_encode = {"sub": str(user_id), "exp": expire}

        return jwt.encode(
            to_encode,
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )

    @classmethod
    def decode_access_token(cls, token: str) -> Optional[int]:
        """Return the user id carried by ``token``, or None if it is invalid or expired."""
        try:
            payload = jwt.decode(
                token,
                settings.SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
            )
            return int(TokenPayload(**payload).sub)
        except (jwt.PyJWTError, ValueError, TypeError):
            return None

    @classmethod
    async def get_user_by_id(cls, db: AsyncSession, user_id: int) -> Optional[User]:
        """Get a user by ID."""
        stmt = select(User).where(User.id == user_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @classmethod
    async def get_user_by_username(cls, db: AsyncSession, username: str) -> Optional[User]:
        """Get a user by username."""
        stmt = select(User).where(User.username == username)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @classmethod
    @handle_async_db_errors("user registration")
    async def register_user(cls, db: AsyncSession, data: UserRegister) -> User:
        """Create a new account. Username and email must both be unused."""
        stmt = select(User.id).where(or_(User.username == data.username, User.email == data.email))
        result = await db.execute(stmt)
        if result.first() is not None:
            raise ConflictError("Username or email already exists")

        user = User(
            username=data.username,
            email=data.email,
            hashed_password=cls.get_password_hash(data.password),
        )
        try:
            async with async_transaction_rollback(db):
                db.add(user)
        except IntegrityError:
            raise ConflictError("Username or email already exists")

        await db.refresh(user)
        auth_logger.success("User registered", user_id=user.id, username=user.username)
        return user

    @classmethod
    async def authenticate(cls, db: AsyncSession, username: str, password: str) -> Optional[User]:
        """Return the user when the credentials match, else None."""
        user = await cls.get_user_by_username(db, username)
        if user is None or not cls.verify_password(password, user.hashed_password):
            auth_logger.warning("Failed login attempt", username=username)
            return None
        return user

    @classmethod
    async def resolve_token(cls, db: AsyncSession, token: Optional[str]) -> Optional[User]:
        """Resolve a bearer token to its user; None when absent or invalid."""
        if not token:
            return None
        user_id = cls.decode_access_token(token)
        if user_id is None:
            return None
        return await cls.get_user_by_id(db, user_id)


# Standalone async dependency functions for FastAPI
async def get_current_user_async(
    db: AsyncSession = Depends(get_async_db),
    token: str = Depends(oauth2_scheme)
) -> User:
    """Get the current authenticated user from the token."""
    user = await AsyncAuthService.resolve_token(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_optional_user_async(
    db: AsyncSession = Depends(get_async_db),
    token: Optional[str] = Depends(optional_oauth2_scheme)
) -> Optional[User]:
    """Get the current user if a valid bearer token was sent, else None."""
    return await AsyncAuthService.resolve_token(db, token)
