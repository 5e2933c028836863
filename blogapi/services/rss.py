"""RSS 2.0 feed of the most recent posts.

The feed is rebuilt from scratch after every post creation and written to
``settings.RSS_FEED_PATH``. Regeneration is best-effort: a failure is logged
and never reaches the request that created the post.
"""

import logging
import os
import tempfile
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import List, Optional, Sequence

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blogapi.core.config import settings
from blogapi.models.post import Post
from blogapi.utils.logger import feed_logger

logger = logging.getLogger(__name__)

TITLE_LENGTH = 80
DESCRIPTION_LENGTH = 300


def _excerpt(text: str, length: int) -> str:
    text = " ".join(text.split())
    if len(text) <= length:
        return text
    return text[:length - 1].rstrip() + "…"


def _rfc822(value: Optional[datetime]) -> str:
    if value is None:
        value = datetime.now(timezone.utc)
    elif value.tzinfo is None:
        # SQLite hands back naive values; they are stored as UTC
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


class FeedService:
    """Builds and stores the syndication feed."""

    def __init__(
        self,
        feed_path: Optional[str] = None,
        site_url: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        size: Optional[int] = None,
    ):
        self.feed_path = Path(feed_path or settings.RSS_FEED_PATH)
        self.site_url = (site_url or settings.SITE_URL).rstrip("/")
        self.title = title or settings.SITE_TITLE
        self.description = description or settings.SITE_DESCRIPTION
        self.size = size or settings.RSS_FEED_SIZE

    async def fetch_latest_posts(self, db: AsyncSession) -> List[Post]:
        result = await db.execute(
            select(Post)
            .options(selectinload(Post.author))
            .order_by(desc(Post.created_at), desc(Post.id))
            .limit(self.size)
        )
        return list(result.scalars().all())

    def post_url(self, post: Post) -> str:
        return f"{self.site_url}/posts/{post.id}"

    def render(self, posts: Sequence[Post]) -> bytes:
        rss = ET.Element("rss", version="2.0")
        channel = ET.SubElement(rss, "channel")
        ET.SubElement(channel, "title").text = self.title
        ET.SubElement(channel, "link").text = self.site_url
        ET.SubElement(channel, "description").text = self.description
        ET.SubElement(channel, "lastBuildDate").text = _rfc822(None)

        for post in posts:
            item = ET.SubElement(channel, "item")
            ET.SubElement(item, "title").text = _excerpt(post.content, TITLE_LENGTH)
            ET.SubElement(item, "link").text = self.post_url(post)
            ET.SubElement(item, "guid", isPermaLink="true").text = self.post_url(post)
            ET.SubElement(item, "description").text = _excerpt(post.content, DESCRIPTION_LENGTH)
            ET.SubElement(item, "category").text = post.tags
            ET.SubElement(item, "pubDate").text = _rfc822(post.created_at)
            if post.image:
                ET.SubElement(item, "enclosure", url=post.image, type="image/*", length="0")

        return ET.tostring(rss, encoding="utf-8", xml_declaration=True)

    def write(self, document: bytes) -> Path:
        """Atomically replace the feed file with ``document``."""
        self.feed_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.feed_path.parent, prefix=".rss-", suffix=".xml")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(document)
            os.replace(tmp_path, self.feed_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return self.feed_path

    async def regenerate(self, db: AsyncSession) -> Path:
        posts = await self.fetch_latest_posts(db)
        document = self.render(posts)
        path = await run_in_threadpool(self.write, document)
        feed_logger.success("RSS feed regenerated", path=str(path), items=len(posts))
        return path

    async def regenerate_safely(self, db: AsyncSession) -> bool:
        """Regenerate the feed, logging and discarding any failure."""
        try:
            await self.regenerate(db)
            return True
        except Exception as e:
            feed_logger.error("RSS feed regeneration failed", error=str(e))
            logger.exception("RSS feed regeneration failed")
            return False
