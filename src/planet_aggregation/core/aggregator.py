"""
Concurrent aggregation of all configured feeds.

Each feed is fetched in its own worker thread. Feeds degrade to their cache
entries individually, but the run as a whole either succeeds for every feed
or fails with the first fatal error.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Optional, Sequence

from planet_aggregation.config import get_config
from planet_aggregation.core.fetcher import FeedFetcher, FetchResult, FetchStats
from planet_aggregation.core.merge import merge_items
from planet_aggregation.logger import get_logger
from planet_aggregation.models import Feed, FeedConfig, Item
from planet_aggregation.storage.cache import CacheStore

logger = get_logger(__name__)


@dataclass
class AggregationResult:
    """Feeds in configuration order and their merged items."""

    feeds: list[Feed] = field(default_factory=list)
    items: list[Item] = field(default_factory=list)
    results: list[FetchResult] = field(default_factory=list)
    stats: FetchStats = field(default_factory=FetchStats)


class Aggregator:
    """Fetches all configured feeds concurrently and merges their items."""

    def __init__(
        self,
        feeds: Sequence[FeedConfig],
        cache_store: CacheStore,
        fetcher: Optional[FeedFetcher] = None,
        max_workers: Optional[int] = None,
    ):
        """Initialize aggregator.

        Args:
            feeds: Feeds to aggregate
            cache_store: Snapshot cache shared by all feed tasks
            fetcher: Feed fetcher, one built on cache_store if omitted
            max_workers: Maximum concurrent fetches
        """
        short_names = [feed.short_name for feed in feeds]
        duplicates = sorted({name for name in short_names if short_names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate feed short names: {', '.join(duplicates)}")

        self.feeds = list(feeds)
        self.cache_store = cache_store
        self.fetcher = fetcher or FeedFetcher(cache_store=cache_store)
        self.max_workers = max_workers or get_config().fetcher.max_workers

    def fetch(
        self,
        force_from_cache: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> AggregationResult:
        """Fetch all feeds and merge their items.

        Args:
            force_from_cache: Load every feed from the cache without network access
            cancel_event: Shared cancellation signal; set on the first fatal error

        Returns:
            AggregationResult with feeds, ranked items and per-feed results

        Raises:
            CacheMissError: If a feed has neither fresh data nor a valid cache entry
            CacheWriteError: If a fresh feed cannot be written to the cache
            FetchCancelledError: If cancel_event was set before a feed was fetched
        """
        if not self.feeds:
            return AggregationResult()

        cancel_event = cancel_event or threading.Event()
        results: list[Optional[FetchResult]] = [None] * len(self.feeds)

        def fetch_one(idx: int, feed_config: FeedConfig) -> None:
            results[idx] = self.fetcher.fetch_feed(
                feed_config,
                force_from_cache=force_from_cache,
                cancel_event=cancel_event,
            )

        error: Optional[BaseException] = None
        workers = min(self.max_workers, len(self.feeds))

        # Leaving the executor waits for running tasks so no cache write is torn
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="plnt-fetch") as executor:
            futures = [
                executor.submit(fetch_one, idx, feed_config)
                for idx, feed_config in enumerate(self.feeds)
            ]
            for future in as_completed(futures):
                error = future.exception()
                if error is not None:
                    cancel_event.set()
                    for pending in futures:
                        pending.cancel()
                    break

        if error is not None:
            logger.error(f"aggregation failed: {error}")
            raise error

        stats = FetchStats()
        feeds = []
        for feed_config, result in zip(self.feeds, results):
            stats.add_result(result)
            feeds.append(
                result.feed.model_copy(
                    update={
                        "title": feed_config.title,
                        "link": result.feed.link or feed_config.url,
                    }
                )
            )

        items = merge_items(feeds)

        logger.info(
            f"got {len(items)} items from {stats.total_feeds} feeds "
            f"({stats.fetched} fetched, {stats.from_cache} from cache, "
            f"cache rate {stats.cache_rate:.0%})"
        )
        if stats.fallbacks_by_type:
            breakdown = ", ".join(
                f"{error_type}: {count}" for error_type, count in sorted(stats.fallbacks_by_type.items())
            )
            logger.warning(f"cache fallbacks after fetch errors: {breakdown}")

        return AggregationResult(feeds=feeds, items=items, results=list(results), stats=stats)
