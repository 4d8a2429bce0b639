"""
RSS/Atom feed fetcher with conditional requests and cache fallback.

Every fetch ends with a usable Feed, either fresh from the network or from
the feed's cache entry. Only a missing cache entry or a failed cache write is
raised to the caller.
"""

import io
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import format_datetime
from enum import Enum
from typing import Optional

import feedparser
import httpx
from pydantic import ValidationError

from planet_aggregation.config import get_config
from planet_aggregation.core.normalizer import FeedNormalizer, SkippedItem, base_url_for
from planet_aggregation.exceptions import FeedParseError, FetchCancelledError, TransientFetchError
from planet_aggregation.logger import get_logger
from planet_aggregation.models import Feed, FeedConfig
from planet_aggregation.storage.cache import CacheStore

logger = get_logger(__name__)


class FetchOutcome(str, Enum):
    """How a feed's data was obtained."""

    FETCHED = "fetched"
    FROM_CACHE = "from_cache"


@dataclass
class FetchResult:
    """Result of fetching one feed."""

    short_name: str
    feed_url: str
    outcome: FetchOutcome
    feed: Feed
    http_status: Optional[int] = None
    error: Optional[str] = None
    fetch_time_seconds: float = 0.0
    skipped: list[SkippedItem] = field(default_factory=list)

    def __post_init__(self):
        """Validate fetch result."""
        if self.outcome == FetchOutcome.FETCHED and self.error:
            raise ValueError("Fetched result cannot have an error")

    @property
    def from_cache(self) -> bool:
        return self.outcome == FetchOutcome.FROM_CACHE

    @property
    def items_count(self) -> int:
        return len(self.feed.items)


@dataclass
class FetchStats:
    """Statistics for one aggregation run."""

    total_feeds: int = 0
    fetched: int = 0
    from_cache: int = 0
    total_items: int = 0
    total_time_seconds: float = 0.0
    fallbacks_by_type: dict = field(default_factory=dict)

    def add_result(self, result: FetchResult) -> None:
        """Add a fetch result to statistics.

        Args:
            result: FetchResult to add
        """
        self.total_feeds += 1
        self.total_items += result.items_count
        self.total_time_seconds += result.fetch_time_seconds

        if result.from_cache:
            self.from_cache += 1
            if result.error:
                error_type = result.error.split(":")[0]
                self.fallbacks_by_type[error_type] = self.fallbacks_by_type.get(error_type, 0) + 1
        else:
            self.fetched += 1

    @property
    def cache_rate(self) -> float:
        """Share of feeds served from the cache."""
        if self.total_feeds == 0:
            return 0.0
        return self.from_cache / self.total_feeds


class FeedFetcher:
    """Fetches one feed at a time, falling back to its cache entry on failure."""

    def __init__(
        self,
        cache_store: CacheStore,
        normalizer: Optional[FeedNormalizer] = None,
        timeout_seconds: Optional[float] = None,
        user_agent: Optional[str] = None,
        follow_redirects: Optional[bool] = None,
    ):
        """Initialize feed fetcher.

        Args:
            cache_store: Snapshot cache used for conditional requests and fallback
            normalizer: Feed normalizer, a default one if omitted
            timeout_seconds: Request timeout in seconds
            user_agent: User-Agent header for HTTP requests
            follow_redirects: Whether to follow HTTP redirects
        """
        config = get_config()

        self.cache_store = cache_store
        self.normalizer = normalizer or FeedNormalizer()
        self.timeout_seconds = timeout_seconds or config.fetcher.timeout_seconds
        self.user_agent = user_agent or config.fetcher.user_agent
        self.follow_redirects = (
            config.fetcher.follow_redirects if follow_redirects is None else follow_redirects
        )

    def fetch_feed(
        self,
        feed_config: FeedConfig,
        force_from_cache: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> FetchResult:
        """Fetch a single feed.

        Args:
            feed_config: Feed to fetch
            force_from_cache: Skip the network and use the cache entry
            cancel_event: Set when the run is aborted; checked before the request

        Returns:
            FetchResult with the fresh or cached Feed

        Raises:
            CacheMissError: If the feed must come from the cache but has no valid entry
            CacheWriteError: If a fresh feed cannot be written to the cache
            FetchCancelledError: If cancel_event was set before the request
        """
        start_time = time.time()
        name = feed_config.short_name

        if force_from_cache:
            return self._from_cache(feed_config, start_time)

        if cancel_event is not None and cancel_event.is_set():
            raise FetchCancelledError(f"[{name}] fetch cancelled")

        modified_since = self.cache_store.last_modified(name)
        logger.info(f"[{name}] fetching {feed_config.url}")

        try:
            response = self._fetch_http(feed_config.url, modified_since)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            reason = f"{type(e).__name__}: {e}"
            logger.warning(f"[{name}] falling back to cache due to fetch error: {reason}")
            return self._from_cache(feed_config, start_time, error=reason)

        http_status = response.status_code

        if http_status == 304:
            logger.debug(f"[{name}] not modified")
            return self._from_cache(feed_config, start_time, http_status=http_status)

        if http_status != 200:
            reason = f"HTTP {http_status}: unexpected status code, want 200"
            logger.warning(f"[{name}] falling back to cache due to fetch error: {reason}")
            return self._from_cache(feed_config, start_time, http_status=http_status, error=reason)

        try:
            parsed = self._parse(response.content)
            result = self.normalizer.normalize(parsed, feed_config, base_url_for(feed_config.url))
        except (TransientFetchError, ValidationError) as e:
            reason = f"{type(e).__name__}: {e}"
            logger.warning(f"[{name}] falling back to cache due to fetch error: {reason}")
            return self._from_cache(feed_config, start_time, http_status=http_status, error=reason)

        for skipped in result.skipped:
            logger.info(f"[{skipped.short_name}] dropping post {skipped.title!r}: {skipped.reason}")

        self.cache_store.store(name, result.feed)

        fetch_time = time.time() - start_time
        logger.info(f"[{name}] fetched {result.items_count} items in {fetch_time:.2f}s")

        return FetchResult(
            short_name=name,
            feed_url=feed_config.url,
            outcome=FetchOutcome.FETCHED,
            feed=result.feed,
            http_status=http_status,
            fetch_time_seconds=fetch_time,
            skipped=result.skipped,
        )

    def _fetch_http(self, url: str, modified_since: Optional[datetime] = None) -> httpx.Response:
        """Issue a conditional GET.

        Args:
            url: URL to fetch
            modified_since: Last-known modification time of the cached copy

        Returns:
            httpx Response with the body read

        Raises:
            httpx.HTTPError: On network or protocol errors
        """
        headers = {"User-Agent": self.user_agent}
        if modified_since is not None:
            headers["If-Modified-Since"] = format_datetime(modified_since, usegmt=True)

        with httpx.Client(
            timeout=self.timeout_seconds,
            follow_redirects=self.follow_redirects,
        ) as client:
            return client.get(url, headers=headers)

    def _parse(self, content: bytes):
        """Parse a response body as RSS or Atom.

        Raises:
            FeedParseError: If the body is not a recognizable feed
        """
        parsed = feedparser.parse(io.BytesIO(content))
        if not parsed.get("version"):
            cause = parsed.get("bozo_exception") or "unrecognized feed format"
            raise FeedParseError(f"cannot parse feed: {cause}")
        return parsed

    def _from_cache(
        self,
        feed_config: FeedConfig,
        start_time: float,
        http_status: Optional[int] = None,
        error: Optional[str] = None,
    ) -> FetchResult:
        """Build a result from the feed's cache entry.

        Raises:
            CacheMissError: If there is no valid cache entry
        """
        feed = self.cache_store.load(feed_config.short_name)
        logger.debug(f"[{feed_config.short_name}] loaded {len(feed.items)} items from cache")

        return FetchResult(
            short_name=feed_config.short_name,
            feed_url=feed_config.url,
            outcome=FetchOutcome.FROM_CACHE,
            feed=feed,
            http_status=http_status,
            error=error,
            fetch_time_seconds=time.time() - start_time,
        )
