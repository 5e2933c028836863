from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from blogapi.db.base_class import Base, utc_now
from blogapi.models.user import Permission


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    tags = Column(String(15), nullable=False)
    image = Column(String(100), nullable=False)
    likes_count = Column(Integer, default=0, server_default="0", nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    author = relationship("User", lazy="raise")

    __table_args__ = (
        CheckConstraint("likes_count >= 0", name="ck_posts_likes_count_non_negative"),
    )

    def has_permission(self, user) -> bool:
        """Whether ``user`` may edit or delete this post."""
        if user is None:
            return False
        return self.author_id == user.id or user.permission_level >= Permission.MODERATOR
