"""Data models for plnt."""

from planet_aggregation.models.feed import Feed, FeedConfig, Item, Person

__all__ = [
    "Feed",
    "FeedConfig",
    "Item",
    "Person",
]
