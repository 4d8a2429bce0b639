"""Merging of feed items into one reverse-chronological stream."""

from typing import Iterable

from planet_aggregation.models import Feed, Item


def merge_items(feeds: Iterable[Feed]) -> list[Item]:
    """Concatenate the items of all feeds, most recent first.

    The sort is stable: items with equal publication dates keep their input
    order. Duplicates across feeds are kept.
    """
    items = [item for feed in feeds for item in feed.items]
    # sorted() stays stable with reverse=True
    return sorted(items, key=lambda item: item.published_at, reverse=True)
