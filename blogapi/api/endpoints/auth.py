"""Authentication API endpoints.

Registration, password login issuing a bearer token, and the current account.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.core.config import settings
from blogapi.db.async_session import get_async_db
from blogapi.models.user import User
from blogapi.schemas.auth import Token, UserRegister
from blogapi.schemas.user import UserPrivate
from blogapi.services.async_auth import AsyncAuthService, get_current_user_async

router = APIRouter()


@router.post("/register", response_model=UserPrivate, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserRegister,
    db: AsyncSession = Depends(get_async_db),
):
    """Create a new account."""
    return await AsyncAuthService.register_user(db, data)


@router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_async_db),
):
    """OAuth2 password flow: exchange username and password for an access token."""
    user = await AsyncAuthService.authenticate(db, form_data.username, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return Token(
        access_token=AsyncAuthService.create_access_token(user.id),
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.get("/me", response_model=UserPrivate)
async def read_current_user(current_user: User = Depends(get_current_user_async)):
    """Get the authenticated account."""
    return current_user
