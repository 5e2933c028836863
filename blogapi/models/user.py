from enum import IntEnum

from sqlalchemy import Column, DateTime, Integer, String

from blogapi.db.base_class import Base, utc_now


class Permission(IntEnum):
    MEMBER = 0
    MODERATOR = 1
    ADMINISTRATOR = 2


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(12), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(180), nullable=False)
    permission = Column(Integer, default=Permission.MEMBER, server_default="0", nullable=False)
    avatar = Column(String, nullable=True)
    biography = Column(String(300), nullable=True)
    followers = Column(Integer, default=0, server_default="0", nullable=False)  # inbound follow edges
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    @property
    def permission_level(self) -> Permission:
        return Permission(self.permission or Permission.MEMBER)

    @property
    def is_administrator(self) -> bool:
        return self.permission_level >= Permission.ADMINISTRATOR
