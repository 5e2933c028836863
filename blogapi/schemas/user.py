"""User schemas.

Serialized users never carry the password hash; the email address is only
exposed to the account owner.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from blogapi.models.user import Permission
from blogapi.schemas.base import BaseSchema


class UserPublic(BaseSchema):
    id: int
    username: str
    avatar: Optional[str] = None
    biography: Optional[str] = None
    permission: Permission
    followers: int
    created_at: datetime


class UserPrivate(UserPublic):
    email: str


class PermissionUpdate(BaseModel):
    permission: Permission


class FollowerCountResponse(BaseModel):
    followers: int
