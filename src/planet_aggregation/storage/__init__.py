"""Storage layer for plnt."""

from planet_aggregation.storage.atomic import atomic_write_bytes, atomic_write_text
from planet_aggregation.storage.cache import CacheStore

__all__ = [
    "CacheStore",
    "atomic_write_bytes",
    "atomic_write_text",
]
