"""
Feed normalizer turning parsed feed documents into Feed snapshots.

Handles missing publication dates, relative image URLs in item content and
source attribution of items. The normalizer never logs; dropped items are
reported back in the NormalizeResult.
"""

import posixpath
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import struct_time
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from planet_aggregation.exceptions import MalformedFragmentError
from planet_aggregation.models import Feed, FeedConfig, Item, Person

_IMG_TAG_RE = re.compile(r"<img\b", re.IGNORECASE)

# One attribute of a start tag, tolerant in the same way as html.parser
_ATTR_RE = re.compile(
    r"""[\s/]*(?P<name>[^\s/>][^\s/=>]*)"""
    r"""(?:\s*=+\s*(?P<value>'[^']*'|"[^"]*"|(?!['"])[^>\s]*))?"""
)


@dataclass
class SkippedItem:
    """An entry dropped during normalization."""

    short_name: str
    title: str
    reason: str = "neither published date nor updated date set"


@dataclass
class NormalizeResult:
    """Result of normalizing one feed document."""

    feed: Feed
    skipped: list[SkippedItem] = field(default_factory=list)

    @property
    def items_count(self) -> int:
        return len(self.feed.items)


def base_url_for(url: str) -> str:
    """Get the base URL relative image references are resolved against.

    The path is replaced by its directory component, query and fragment are
    dropped: ``https://host/blog/feed.xml`` becomes ``https://host/blog``.
    """
    parts = urlsplit(url)
    directory = posixpath.dirname(parts.path) or "/"
    return urlunsplit((parts.scheme, parts.netloc, directory, "", ""))


def make_absolute(content: str, base_url: str) -> str:
    """Rewrite relative ``<img src>`` references in an HTML fragment.

    Every src value without ``://`` is prefixed with ``base_url`` (trailing
    slash removed). The new values are spliced into the original string, so
    all other markup keeps its exact bytes. Fragments without images are
    returned unchanged.

    Args:
        content: HTML fragment
        base_url: Base URL of the feed

    Returns:
        The fragment with absolute image references

    Raises:
        MalformedFragmentError: If the fragment cannot be parsed
    """
    if not content or not _IMG_TAG_RE.search(content):
        return content

    try:
        soup = BeautifulSoup(content, "html.parser", multi_valued_attributes=None)
    except ParserRejectedMarkup as e:
        raise MalformedFragmentError(f"cannot parse content: {e}") from e

    # html.parser reports (line, column) positions; lines end at \n only
    line_starts = [0] + [idx + 1 for idx, char in enumerate(content) if char == "\n"]
    prefix = base_url.rstrip("/")

    pieces = []
    last = 0
    for img in soup.find_all("img"):
        src = img.get("src")
        if src is None or "://" in src:
            continue  # already absolute
        if img.sourceline is None:
            raise MalformedFragmentError("cannot locate <img> in content")

        span = _src_value_span(content, line_starts[img.sourceline - 1] + img.sourcepos)
        if span is None:
            continue  # bare src attribute without a value

        value_start, value_end = span
        pieces.append(content[last:value_start])
        pieces.append(prefix + content[value_start:value_end])
        last = value_end

    if not pieces:
        return content

    pieces.append(content[last:])
    return "".join(pieces)


def _src_value_span(content: str, start: int) -> Optional[tuple[int, int]]:
    """Locate the raw src value of the ``<img`` start tag at ``start``.

    Returns the offsets of the value without its quotes, or None when the tag
    has no src value. A repeated src attribute resolves to the last one, as
    in the parsed tree.

    Raises:
        MalformedFragmentError: If no ``<img`` tag starts at ``start``
    """
    if content[start : start + 4].lower() != "<img":
        raise MalformedFragmentError(f"cannot locate <img> at offset {start}")

    span = None
    pos = start + 4
    while True:
        match = _ATTR_RE.match(content, pos)
        if match is None or match.end() == pos:
            break
        if match.group("name").lower() == "src" and match.group("value") is not None:
            value_start, value_end = match.span("value")
            if content[value_start : value_start + 1] in ("'", '"'):
                value_start, value_end = value_start + 1, value_end - 1
            span = (value_start, value_end)
        pos = match.end()
    return span


def _to_datetime(value: Any) -> Optional[datetime]:
    """Convert a feedparser date (struct_time) or datetime to an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, (struct_time, tuple)):
        try:
            return datetime(*value[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError):
            return None
    return None


def _text(value: Any) -> str:
    return str(value).strip() if value else ""


class FeedNormalizer:
    """Converts parsed feed documents into normalized Feed snapshots."""

    def normalize(
        self,
        document: Mapping,
        feed_config: FeedConfig,
        base_url: Optional[str] = None,
    ) -> NormalizeResult:
        """Normalize a parsed feed document.

        Args:
            document: feedparser result (or a mapping with ``feed`` and ``entries``)
            feed_config: Configuration of the source feed
            base_url: Base for relative image URLs, derived from the feed URL if omitted

        Returns:
            NormalizeResult with the Feed and the dropped entries

        Raises:
            MalformedFragmentError: If an item's content cannot be parsed
        """
        if base_url is None:
            base_url = base_url_for(feed_config.url)

        feed_info = document.get("feed") or {}
        title = _text(feed_info.get("title"))
        link = _text(feed_info.get("link"))
        feed_link = link or feed_config.url

        items = []
        skipped = []

        for entry in document.get("entries") or []:
            published = entry.get("published") or ""
            published_at = _to_datetime(entry.get("published_parsed"))
            # raw lookup: FeedParserDict maps a missing "updated" to "published"
            updated = dict.get(entry, "updated") or ""
            updated_at = _to_datetime(dict.get(entry, "updated_parsed"))

            if published_at is None:
                # fall back to the updated date, if any
                published, published_at = updated, updated_at
                if published_at is None:
                    skipped.append(
                        SkippedItem(short_name=feed_config.short_name, title=_text(entry.get("title")))
                    )
                    continue

            try:
                content = make_absolute(self._content(entry), base_url)
            except MalformedFragmentError as e:
                raise MalformedFragmentError(f"make_absolute({feed_config.short_name}): {e}") from e

            items.append(
                Item(
                    title=_text(entry.get("title")),
                    link=_text(entry.get("link")),
                    content=content,
                    description=entry.get("summary") or entry.get("description") or "",
                    author=self._author(entry),
                    categories=self._categories(entry),
                    guid=_text(entry.get("id") or entry.get("guid")),
                    published=published,
                    published_at=published_at,
                    updated=updated,
                    updated_at=updated_at,
                    feed_title=feed_config.title,
                    feed_link=feed_link,
                )
            )

        return NormalizeResult(feed=Feed(title=title, link=link, items=tuple(items)), skipped=skipped)

    def _content(self, entry: Mapping) -> str:
        content = entry.get("content")
        if isinstance(content, str):
            return content
        if content:
            return content[0].get("value") or ""
        return ""

    def _author(self, entry: Mapping) -> Optional[Person]:
        detail = entry.get("author_detail")
        if detail:
            name = _text(detail.get("name"))
            email = _text(detail.get("email"))
        else:
            name = _text(entry.get("author"))
            email = ""
        if not name and not email:
            return None
        return Person(name=name, email=email)

    def _categories(self, entry: Mapping) -> tuple[str, ...]:
        categories = []
        for tag in entry.get("tags") or []:
            term = tag.get("term") if isinstance(tag, Mapping) else tag
            term = _text(term)
            if term:
                categories.append(term)
        return tuple(categories)
