"""Post API endpoints.

Listing, detail, creation, update and deletion of posts, likes, and the
comments attached to a post.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.db.async_session import get_async_db
from blogapi.models.user import User
from blogapi.schemas.comment import CommentCreate, CommentResponse
from blogapi.schemas.post import (
    POST_UPDATABLE_FIELDS,
    LikeCountResponse,
    PostCreate,
    PostDetail,
    PostSummary,
    PostUpdate,
)
from blogapi.schemas.validation import validate_model
from blogapi.services.async_auth import get_current_user_async, get_optional_user_async
from blogapi.services.async_comment import AsyncCommentService
from blogapi.services.async_error_handler import BadInputError
from blogapi.services.async_post import AsyncPostService

router = APIRouter()

HAS_LIKED_HEADER = "X-Has-Liked"
COMMENT_COUNT_HEADER = "X-Comment-Count"


@router.get("", response_model=List[PostSummary])
async def list_posts(
    limit: Optional[int] = Query(None, gt=0),
    page: Optional[int] = Query(None, gt=0),
    db: AsyncSession = Depends(get_async_db),
):
    """List posts, newest first, without their comments."""
    return await AsyncPostService.list_posts(db, limit=limit, page=page)


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: int,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    current_user: Optional[User] = Depends(get_optional_user_async),
):
    """
    Get a post with its author, first comments and likers.

    Whether the caller liked the post and the total comment count are sent
    as the ``X-Has-Liked`` and ``X-Comment-Count`` headers.
    """
    detail = await AsyncPostService.get_post_detail(db, post_id, current_user)

    response.headers[HAS_LIKED_HEADER] = "true" if detail.has_liked else "false"
    response.headers[COMMENT_COUNT_HEADER] = str(detail.comment_count)

    return PostDetail(
        **PostSummary.model_validate(detail.post).model_dump(),
        comments=[CommentResponse.model_validate(comment) for comment in detail.comments],
        likes=detail.liker_ids,
    )


@router.post("", response_model=PostSummary, status_code=status.HTTP_201_CREATED)
async def create_post(
    post: PostCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user_async),
):
    """Create a new post."""
    return await AsyncPostService.create_post(db, current_user, post)


@router.put("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_post(
    post_id: int,
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user_async),
):
    """Update a post's content, image or tags. Other fields in the body are ignored."""
    validation = validate_model(PostUpdate, payload, allowed_fields=POST_UPDATABLE_FIELDS)
    if not validation.ok:
        raise BadInputError("Invalid post data", validation.errors)

    await AsyncPostService.update_post(db, post_id, current_user, validation.value)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user_async),
):
    """Delete a post."""
    await AsyncPostService.delete_post(db, post_id, current_user)


@router.post("/{post_id}/like", response_model=LikeCountResponse)
async def like_post(
    post_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user_async),
):
    """Like a post."""
    likes_count = await AsyncPostService.like_post(db, post_id, current_user)
    return LikeCountResponse(likes_count=likes_count)


@router.delete("/{post_id}/like", response_model=LikeCountResponse)
async def unlike_post(
    post_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user_async),
):
    """Remove a like from a post."""
    likes_count = await AsyncPostService.unlike_post(db, post_id, current_user)
    return LikeCountResponse(likes_count=likes_count)


@router.get("/{post_id}/comments", response_model=List[CommentResponse])
async def get_post_comments(
    post_id: int,
    limit: int = Query(20, gt=0, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_db),
):
    """Get comments for a post, oldest first."""
    return await AsyncCommentService.get_post_comments(db, post_id, limit=limit, offset=offset)


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: int,
    comment: CommentCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user_async),
):
    """Comment on a post."""
    return await AsyncCommentService.create_comment(db, post_id, current_user, comment.content)
