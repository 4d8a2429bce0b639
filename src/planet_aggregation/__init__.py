"""
plnt - a planet-style feed aggregator.

Fetches a static list of RSS/Atom feeds concurrently, falls back to a local
snapshot cache when an upstream feed is unavailable, and merges all items into
one reverse-chronological stream rendered as an HTML page and an Atom feed.
"""

__version__ = "0.1.0"
