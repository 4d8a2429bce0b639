"""Unit tests for the feed snapshot cache."""

import os
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from conftest import make_item, utc
from planet_aggregation.exceptions import CacheCorruptError, CacheMissError, CacheWriteError
from planet_aggregation.models import Feed, Person
from planet_aggregation.storage.atomic import atomic_write_bytes, atomic_write_text
from planet_aggregation.storage.cache import CacheStore


class TestCacheStore:
    """Tests for CacheStore."""

    def test_locate(self, tmp_path):
        """Test that cache paths derive from the short name."""
        store = CacheStore(tmp_path)

        assert store.locate("sur5r-blog") == tmp_path / "plnt" / "sur5r-blog.json"
        assert store.locate("sur5r-blog") == CacheStore(tmp_path).locate("sur5r-blog")

    def test_custom_subdir(self, tmp_path):
        """Test a custom subdirectory."""
        store = CacheStore(tmp_path, subdir="snapshots")

        assert store.locate("a") == tmp_path / "snapshots" / "a.json"

    def test_last_modified_missing(self, cache_store):
        """Test last_modified without an entry."""
        assert cache_store.last_modified("missing") is None

    def test_last_modified_from_mtime(self, cache_store, cached_feed):
        """Test that last_modified reflects the file mtime."""
        path = cache_store.store("blog", cached_feed)
        os.utime(path, (1704067200, 1704067200))

        assert cache_store.last_modified("blog") == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_round_trip(self, cache_store, cached_feed):
        """Test that a stored feed loads back equal."""
        cache_store.store("blog", cached_feed)

        assert cache_store.load("blog") == cached_feed

    def test_round_trip_full_item(self, cache_store):
        """Test round-tripping every item field."""
        feed = Feed(
            title="T",
            link="https://example.com/",
            items=(
                make_item(
                    "Full",
                    utc(2024, 2, 29, 23, 59, 59),
                    description="<b>desc</b>",
                    author=Person(name="Ann", email="ann@example.com"),
                    categories=("a", "b"),
                    updated="2024-03-01T00:00:00Z",
                    updated_at=utc(2024, 3, 1),
                    feed_title="Feed",
                    feed_link="https://example.com/",
                ),
            ),
        )

        cache_store.store("full", feed)

        assert cache_store.load("full") == feed

    def test_store_creates_directories(self, tmp_path, cached_feed):
        """Test that missing directories are created."""
        store = CacheStore(tmp_path / "does" / "not" / "exist")

        path = store.store("blog", cached_feed)

        assert path.exists()
        assert path == store.locate("blog")

    def test_store_replaces_entry(self, cache_store, cached_feed):
        """Test that storing again replaces the entry."""
        cache_store.store("blog", cached_feed)
        newer = Feed(title="New", link="", items=cached_feed.items[:1])

        cache_store.store("blog", newer)

        assert cache_store.load("blog") == newer
        assert [p.name for p in cache_store.root.iterdir()] == ["blog.json"]

    def test_load_missing(self, cache_store):
        """Test loading a missing entry."""
        with pytest.raises(CacheMissError) as exc_info:
            cache_store.load("missing")

        assert exc_info.value.short_name == "missing"
        assert not isinstance(exc_info.value, CacheCorruptError)

    @pytest.mark.parametrize("payload", [b"", b"{not json", b'{"items": [{"title": "no date"}]}', b"\xff\xfe"])
    def test_load_corrupt(self, cache_store, payload):
        """Test that corrupt entries raise CacheCorruptError."""
        path = cache_store.locate("broken")
        path.parent.mkdir(parents=True)
        path.write_bytes(payload)

        with pytest.raises(CacheCorruptError):
            cache_store.load("broken")

    def test_corrupt_is_a_miss(self):
        """Test that corrupt entries count as cache misses."""
        assert issubclass(CacheCorruptError, CacheMissError)

    def test_store_failure_raises_write_error(self, tmp_path, cached_feed):
        """Test that an unwritable cache directory raises CacheWriteError."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = CacheStore(blocker)

        with pytest.raises(CacheWriteError) as exc_info:
            store.store("blog", cached_feed)

        assert exc_info.value.short_name == "blog"

    def test_failed_write_keeps_previous_entry(self, cache_store, cached_feed):
        """Test that a crash during replace leaves the old entry intact."""
        cache_store.store("blog", cached_feed)

        with patch("planet_aggregation.storage.atomic.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(CacheWriteError):
                cache_store.store("blog", Feed(title="New"))

        assert cache_store.load("blog") == cached_feed
        assert [p.name for p in cache_store.root.iterdir()] == ["blog.json"]

    def test_different_keys_do_not_interfere(self, cache_store, cached_feed):
        """Test that entries of different feeds are independent."""
        other = Feed(title="Other")
        cache_store.store("a", cached_feed)
        cache_store.store("b", other)

        assert cache_store.load("a") == cached_feed
        assert cache_store.load("b") == other


class TestAtomicWrite:
    """Tests for atomic file writes."""

    def test_write_bytes(self, tmp_path):
        """Test writing bytes."""
        path = atomic_write_bytes(tmp_path / "out.bin", b"\x00\x01")

        assert path.read_bytes() == b"\x00\x01"

    def test_write_text(self, tmp_path):
        """Test writing UTF-8 text."""
        path = atomic_write_text(tmp_path / "sub" / "out.html", "crème")

        assert path.read_text(encoding="utf-8") == "crème"

    def test_mode(self, tmp_path):
        """Test file permissions."""
        path = atomic_write_bytes(tmp_path / "out", b"x", mode=0o600)

        assert path.stat().st_mode & 0o777 == 0o600
