"""Jinja2 environment shared by the HTML and Atom renderers."""

from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from jinja2 import Environment, PackageLoader, StrictUndefined


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_day(value: Optional[datetime]) -> str:
    """Format a datetime as a day header (2006-01-02)."""
    if value is None:
        return ""
    return _utc(value).strftime("%Y-%m-%d")


def format_timestamp(value: Optional[datetime]) -> str:
    """Format a datetime for display (2006-01-02 15:04)."""
    if value is None:
        return ""
    return _utc(value).strftime("%Y-%m-%d %H:%M")


def rfc3339(value: datetime) -> str:
    """Format a datetime as an Atom date construct."""
    return _utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    """Get the template environment with the plnt filters registered."""
    env = Environment(
        loader=PackageLoader("planet_aggregation", "templates"),
        autoescape=True,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    env.filters["format_day"] = format_day
    env.filters["format_timestamp"] = format_timestamp
    env.filters["rfc3339"] = rfc3339
    return env
