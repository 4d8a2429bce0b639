"""Shared fixtures for plnt tests."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock

import pytest

from planet_aggregation.config import Config, set_config
from planet_aggregation.models import Feed, FeedConfig, Item
from planet_aggregation.storage.cache import CacheStore

RSS_FEED = b"""<?xml version="1.0" encoding="utf-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
<channel>
<title>Upstream Blog</title>
<link>https://blog.example.com/</link>
<description>Posts</description>
<item>
<title>Third post</title>
<link>https://blog.example.com/third</link>
<guid>https://blog.example.com/third</guid>
<pubDate>Wed, 03 Jan 2024 10:00:00 GMT</pubDate>
<description>Summary of the third post</description>
<content:encoded><![CDATA[<p>Look: <img src="/images/third.png" alt="third"/></p>]]></content:encoded>
<category>hardware</category>
</item>
<item>
<title>Second post</title>
<link>https://blog.example.com/second</link>
<guid>https://blog.example.com/second</guid>
<pubDate>Tue, 02 Jan 2024 10:00:00 GMT</pubDate>
<description>Summary of the second post</description>
</item>
<item>
<title>First post</title>
<link>https://blog.example.com/first</link>
<guid>https://blog.example.com/first</guid>
<pubDate>Mon, 01 Jan 2024 10:00:00 GMT</pubDate>
<description>Summary of the first post</description>
</item>
</channel>
</rss>
"""

ATOM_FEED = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
<title>Atom Blog</title>
<id>urn:uuid:atom-blog</id>
<updated>2024-01-05T00:00:00Z</updated>
<entry>
<title>Updated only</title>
<link href="https://atom.example.org/updated-only"/>
<id>urn:uuid:updated-only</id>
<updated>2024-01-04T12:00:00Z</updated>
<author><name>Jane Roe</name><email>jane@example.org</email></author>
<content type="html">&lt;p&gt;Atom body&lt;/p&gt;</content>
</entry>
<entry>
<title>Published</title>
<link href="https://atom.example.org/published"/>
<id>urn:uuid:published</id>
<published>2024-01-02T08:00:00Z</published>
<updated>2024-01-02T09:00:00Z</updated>
<summary>Published summary</summary>
</entry>
<entry>
<title>Undated</title>
<link href="https://atom.example.org/undated"/>
<id>urn:uuid:undated</id>
<summary>No date at all</summary>
</entry>
</feed>
"""


def utc(*args) -> datetime:
    """Build an aware UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


def make_item(title: str, published_at: datetime, **kwargs) -> Item:
    """Build an Item with sensible defaults."""
    defaults = {
        "link": f"https://example.com/{title.lower().replace(' ', '-')}",
        "content": f"<p>{title}</p>",
        "guid": f"urn:{title}",
        "published": published_at.strftime("%a, %d %b %Y %H:%M:%S GMT"),
    }
    defaults.update(kwargs)
    return Item(title=title, published_at=published_at, **defaults)


def mock_http_client(mock_client_class, response=None, side_effect=None) -> MagicMock:
    """Wire a patched httpx.Client class to return a client mock."""
    mock_client = MagicMock()
    if side_effect is not None:
        mock_client.get.side_effect = side_effect
    else:
        mock_client.get.return_value = response
    mock_client.__enter__ = Mock(return_value=mock_client)
    mock_client.__exit__ = Mock(return_value=False)
    mock_client_class.return_value = mock_client
    return mock_client


def mock_response(status_code: int = 200, content: bytes = b"") -> MagicMock:
    """Build an httpx response mock."""
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.headers = {}
    return response


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Give every test a fresh global configuration."""
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    config = Config()
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def cache_store(tmp_path) -> CacheStore:
    """Create a cache store rooted in a temporary directory."""
    return CacheStore(tmp_path / "cache")


@pytest.fixture
def rss_config() -> FeedConfig:
    """Configuration of the RSS sample feed."""
    return FeedConfig(
        short_name="upstream-blog",
        title="Configured Blog Title",
        url="https://blog.example.com/feed.xml",
    )


@pytest.fixture
def atom_config() -> FeedConfig:
    """Configuration of the Atom sample feed."""
    return FeedConfig(
        short_name="atom-blog",
        title="Configured Atom Title",
        url="https://atom.example.org/blog/atom.xml",
    )


@pytest.fixture
def cached_feed() -> Feed:
    """A normalized feed with two items, as stored in the cache."""
    return Feed(
        title="Cached Upstream Title",
        link="https://cached.example.net/",
        items=(
            make_item("Cached newer", utc(2024, 1, 2, 12, 0), feed_title="Cached", feed_link="https://cached.example.net/"),
            make_item("Cached older", utc(2023, 12, 30, 8, 0), feed_title="Cached", feed_link="https://cached.example.net/"),
        ),
    )
