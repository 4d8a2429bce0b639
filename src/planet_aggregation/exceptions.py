"""
Exception hierarchy for plnt.

Per-feed failures that can be recovered from the cache derive from
TransientFetchError. Everything else leaves a feed without data and aborts the
aggregation run.
"""


class AggregationError(Exception):
    """Base class for all plnt errors."""


class ConfigError(AggregationError):
    """Configuration file is missing or invalid."""


class TransientFetchError(AggregationError):
    """A feed could not be fetched or normalized; the cache is used instead."""


class FeedParseError(TransientFetchError):
    """Response body is not a recognizable RSS/Atom document."""


class MalformedFragmentError(TransientFetchError):
    """Item content markup could not be parsed."""


class CacheMissError(AggregationError):
    """No usable cache entry exists for a feed."""

    def __init__(self, short_name: str, reason: str):
        self.short_name = short_name
        self.reason = reason
        super().__init__(f"[{short_name}] no cached copy available: {reason}")


class CacheCorruptError(CacheMissError):
    """A cache entry exists but does not contain a valid feed snapshot."""


class CacheWriteError(AggregationError):
    """A freshly fetched feed could not be written to the cache."""

    def __init__(self, short_name: str, reason: str):
        self.short_name = short_name
        self.reason = reason
        super().__init__(f"[{short_name}] writing cache entry failed: {reason}")


class FetchCancelledError(AggregationError):
    """A feed task was abandoned because another feed failed fatally."""
