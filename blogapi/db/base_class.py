from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import as_declarative, declared_attr


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@as_declarative()
class Base:
    """Base class for all database models."""

    id: Any
    __name__: str

    # Generate tablename automatically
    @declared_attr
    def __tablename__(cls) -> str:
        """Generate database table name automatically."""
        return cls.__name__.lower() + "s"

    # Client-side default keeps creation order distinct within one transaction
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)
