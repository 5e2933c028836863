"""
Unit tests for the RSS feed builder.
"""

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from types import SimpleNamespace

from blogapi.services.rss import FeedService


def _post(post_id, content="A" * 250, tags="python", image="https://img.example.com/x.png"):
    return SimpleNamespace(
        id=post_id,
        content=content,
        tags=tags,
        image=image,
        created_at=datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc),
    )


class TestRender:

    def test_channel_and_items(self, feed_service):
        document = feed_service.render([_post(2), _post(1)])

        root = ET.fromstring(document)
        channel = root.find("channel")
        assert root.tag == "rss" and root.get("version") == "2.0"
        assert channel.findtext("title") == "Test Blog"
        assert channel.findtext("link") == "http://blog.test"

        items = channel.findall("item")
        assert [item.findtext("link") for item in items] == [
            "http://blog.test/posts/2",
            "http://blog.test/posts/1",
        ]
        assert items[0].findtext("category") == "python"
        assert items[0].findtext("pubDate") == "Sat, 01 Mar 2025 12:30:00 GMT"
        assert items[0].find("enclosure").get("url") == "https://img.example.com/x.png"

    def test_long_content_is_excerpted(self, feed_service):
        document = feed_service.render([_post(1, content="word " * 200)])

        item = ET.fromstring(document).find("channel/item")
        assert len(item.findtext("title")) <= 80
        assert item.findtext("title").endswith("…")
        assert len(item.findtext("description")) <= 300

    def test_naive_timestamps_are_treated_as_utc(self, feed_service):
        post = _post(1)
        post.created_at = datetime(2025, 3, 1, 12, 30)

        item = ET.fromstring(feed_service.render([post])).find("channel/item")
        assert item.findtext("pubDate") == "Sat, 01 Mar 2025 12:30:00 GMT"

    def test_special_characters_are_escaped(self, feed_service):
        document = feed_service.render([_post(1, content="<b>Fish & chips</b> " * 20)])

        item = ET.fromstring(document).find("channel/item")
        assert item.findtext("title").startswith("<b>Fish & chips</b>")


class TestWrite:

    def test_write_replaces_file(self, feed_service):
        feed_service.write(b"<rss>old</rss>")
        path = feed_service.write(b"<rss>new</rss>")

        assert path == feed_service.feed_path
        assert path.read_bytes() == b"<rss>new</rss>"
        assert [p.name for p in path.parent.iterdir()] == ["rss.xml"]


class TestRegenerate:

    async def test_keeps_only_latest_posts(self, async_db_session, tmp_path, eleven_posts):
        feed = FeedService(feed_path=str(tmp_path / "small.xml"), site_url="http://blog.test", size=3)

        await feed.regenerate(async_db_session)

        items = ET.parse(feed.feed_path).getroot().findall("channel/item")
        assert [item.findtext("guid") for item in items] == [
            f"http://blog.test/posts/{eleven_posts[i].id}" for i in (10, 9, 8)
        ]

    async def test_regenerate_safely_swallows_write_errors(self, async_db_session, feed_service, monkeypatch):
        def broken_write(document):
            raise PermissionError("read-only file system")

        monkeypatch.setattr(feed_service, "write", broken_write)

        assert await feed_service.regenerate_safely(async_db_session) is False
        assert not feed_service.feed_path.exists()

    async def test_regenerate_safely_reports_success(self, async_db_session, feed_service, alice_post):
        assert await feed_service.regenerate_safely(async_db_session) is True
        assert feed_service.feed_path.exists()
