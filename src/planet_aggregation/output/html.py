"""
HTML page renderer.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence, Union

from planet_aggregation.logger import get_logger
from planet_aggregation.models import Feed, Item
from planet_aggregation.output.environment import get_environment
from planet_aggregation.storage.atomic import atomic_write_text

logger = get_logger(__name__)


def render_html(
    feeds: Sequence[Feed],
    items: Sequence[Item],
    name: str,
    feed_href: str = "/atom.xml",
    last_updated: Optional[datetime] = None,
) -> str:
    """Render the planet page.

    Args:
        feeds: Subscribed feeds, listed in the sidebar
        items: Ranked items to show
        name: Planet name
        feed_href: Link to the merged Atom feed
        last_updated: Generation time, now if omitted

    Returns:
        HTML document
    """
    template = get_environment().get_template("index.html.j2")
    return template.render(
        feeds=feeds,
        items=items,
        name=name,
        feed_href=feed_href,
        last_updated=last_updated or datetime.now(timezone.utc),
    )


def write_html(
    path: Union[str, Path],
    feeds: Sequence[Feed],
    items: Sequence[Item],
    name: str,
    feed_href: str = "/atom.xml",
) -> Path:
    """Render the planet page and atomically write it to ``path``."""
    html = render_html(feeds, items, name=name, feed_href=feed_href)
    path = atomic_write_text(path, html)
    logger.info(f"wrote HTML page to {path}")
    return path
