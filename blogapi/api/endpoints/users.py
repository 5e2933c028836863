from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.db.async_session import get_async_db
from blogapi.models.user import User
from blogapi.schemas.post import PostSummary
from blogapi.schemas.user import FollowerCountResponse, PermissionUpdate, UserPublic
from blogapi.services.async_auth import get_current_user_async
from blogapi.services.async_follow import AsyncFollowService
from blogapi.services.async_user import AsyncUserService

router = APIRouter()


@router.get("", response_model=List[UserPublic])
async def list_users(
    limit: int = Query(50, gt=0, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_db),
):
    return await AsyncUserService.list_users(db, limit=limit, offset=offset)


@router.get("/{user_id}", response_model=UserPublic)
async def get_user(user_id: int, db: AsyncSession = Depends(get_async_db)):
    return await AsyncUserService.get_user(db, user_id)


@router.get("/{user_id}/posts", response_model=List[PostSummary])
async def get_user_posts(
    user_id: int,
    limit: int = Query(20, gt=0, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_db),
):
    """Get posts by a specific user, newest first."""
    return await AsyncUserService.get_user_posts(db, user_id, limit=limit, offset=offset)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user_async),
):
    """Delete an account with its posts, likes, comments and follows."""
    await AsyncUserService.delete_user(db, user_id, current_user)


@router.put("/{user_id}/permission", response_model=UserPublic)
async def update_permission(
    user_id: int,
    data: PermissionUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user_async),
):
    """Change a user's permission level. Administrators only."""
    return await AsyncUserService.update_permission(db, user_id, data.permission, current_user)


@router.get("/{user_id}/followers", response_model=List[UserPublic])
async def get_followers(user_id: int, db: AsyncSession = Depends(get_async_db)):
    return await AsyncFollowService.get_followers(db, user_id)


@router.get("/{user_id}/following", response_model=List[UserPublic])
async def get_following(user_id: int, db: AsyncSession = Depends(get_async_db)):
    return await AsyncFollowService.get_following(db, user_id)


@router.post("/{follower_id}/follow/{following_id}", response_model=FollowerCountResponse)
async def follow_user(
    follower_id: int,
    following_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user_async),
):
    """Make ``follower_id`` follow ``following_id``; returns the followed user's follower count."""
    followers = await AsyncFollowService.follow(db, follower_id, following_id, current_user)
    return FollowerCountResponse(followers=followers)


@router.delete("/{follower_id}/follow/{following_id}", response_model=FollowerCountResponse)
async def unfollow_user(
    follower_id: int,
    following_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user_async),
):
    followers = await AsyncFollowService.unfollow(db, follower_id, following_id, current_user)
    return FollowerCountResponse(followers=followers)
