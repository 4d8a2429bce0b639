"""Core aggregation logic: normalization, fetching with cache fallback, merging."""

from planet_aggregation.core.aggregator import AggregationResult, Aggregator
from planet_aggregation.core.fetcher import (
    FeedFetcher,
    FetchOutcome,
    FetchResult,
    FetchStats,
)
from planet_aggregation.core.merge import merge_items
from planet_aggregation.core.normalizer import (
    FeedNormalizer,
    NormalizeResult,
    SkippedItem,
    base_url_for,
    make_absolute,
)

__all__ = [
    "Aggregator",
    "AggregationResult",
    "FeedFetcher",
    "FetchOutcome",
    "FetchResult",
    "FetchStats",
    "merge_items",
    "FeedNormalizer",
    "NormalizeResult",
    "SkippedItem",
    "base_url_for",
    "make_absolute",
]
