"""
Feed and item data models.

All models are immutable. A Feed serializes to the JSON stored in the cache
and validates back into an equal value.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FeedConfig(BaseModel):
    """Identity and fetch parameters of one configured source."""

    model_config = ConfigDict(frozen=True)

    short_name: str = Field(..., min_length=1, description="Stable cache key, e.g. sur5r-blog")
    title: str = Field(..., description="Human-readable title")
    url: str = Field(..., min_length=1, description="Feed URL")

    @field_validator("short_name")
    @classmethod
    def validate_short_name(cls, v: str) -> str:
        """Short names become file names, so they must be a single path segment."""
        v = v.strip()
        if not v or v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError(f"Invalid short name: {v!r}")
        return v


class Person(BaseModel):
    """Item author."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: str = ""


class Item(BaseModel):
    """One normalized syndication entry."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    link: str = ""
    content: str = ""
    description: str = ""
    author: Optional[Person] = None
    categories: tuple[str, ...] = ()
    guid: str = ""

    published: str = Field(default="", description="Publication date as found in the source")
    published_at: datetime = Field(..., description="Publication date, timezone-aware UTC")
    updated: str = ""
    updated_at: Optional[datetime] = None

    # Denormalized source feed attribution
    feed_title: str = ""
    feed_link: str = ""


class Feed(BaseModel):
    """Normalized snapshot of one source."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    link: str = ""
    items: tuple[Item, ...] = ()

    def __repr__(self) -> str:
        return f"<Feed(title='{self.title}', link='{self.link}', items={len(self.items)})>"
