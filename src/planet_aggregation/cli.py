"""
Command-line entry point: fetch all feeds, write the Atom feed and HTML page.
"""

import argparse
import sys
from typing import Optional, Sequence

from planet_aggregation.config import DEFAULT_CONFIG_PATH, LOG_LEVELS, load_config_from_yaml, set_config
from planet_aggregation.core.aggregator import Aggregator
from planet_aggregation.core.fetcher import FeedFetcher
from planet_aggregation.exceptions import AggregationError
from planet_aggregation.logger import get_logger, setup_logger
from planet_aggregation.output import write_atom, write_html
from planet_aggregation.storage.cache import CacheStore

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="plnt",
        description="Aggregate RSS/Atom feeds into one HTML page and Atom feed",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help="path to the configuration file",
    )
    parser.add_argument(
        "--force-from-cache",
        action="store_true",
        help="force loading feeds from cache (prevents any network access). "
        "useful for a rapid feedback cycle during development",
    )
    parser.add_argument(
        "--feed-path",
        default="atom.xml",
        help="path to write the output Atom feed to",
    )
    parser.add_argument(
        "--html-path",
        default="index.html",
        help="path to write the output HTML file to",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=LOG_LEVELS,
        help="log level (DEBUG, INFO, WARNING, ...)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one aggregation.

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config_from_yaml(args.config)
    except AggregationError as e:
        setup_logger(level=args.log_level)
        logger.error(str(e))
        return 1

    set_config(config)
    setup_logger(level=args.log_level, log_config=config.logging)

    cache_store = CacheStore(config.cache.resolve_dir(), subdir=config.cache.subdir)
    fetcher = FeedFetcher(
        cache_store=cache_store,
        timeout_seconds=config.fetcher.timeout_seconds,
        user_agent=config.fetcher.user_agent,
        follow_redirects=config.fetcher.follow_redirects,
    )
    aggregator = Aggregator(
        feeds=config.feed_configs(),
        cache_store=cache_store,
        fetcher=fetcher,
        max_workers=config.fetcher.max_workers,
    )

    try:
        result = aggregator.fetch(force_from_cache=args.force_from_cache)
    except AggregationError as e:
        logger.error(f"Fetch: {e}")
        return 1

    items = result.items
    if config.output.max_items and len(items) > config.output.max_items:
        items = items[: config.output.max_items]

    logger.info(f"got {len(items)} items")

    try:
        write_atom(args.feed_path, items, title=config.output.name, link=config.output.link)
    except OSError as e:
        logger.error(f"writing aggregated feed: {e}")
        return 1

    try:
        write_html(args.html_path, result.feeds, items, name=config.output.name)
    except OSError as e:
        logger.error(f"writing HTML output: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
