"""
Merged Atom feed writer.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence, Union

from planet_aggregation.logger import get_logger
from planet_aggregation.models import Item
from planet_aggregation.output.environment import get_environment
from planet_aggregation.storage.atomic import atomic_write_text

logger = get_logger(__name__)


def render_atom(
    items: Sequence[Item],
    title: str,
    link: str,
    updated: Optional[datetime] = None,
) -> str:
    """Render items as an Atom 1.0 document.

    Args:
        items: Ranked items, one entry each
        title: Feed title
        link: Feed link, also used as the feed id
        updated: Feed update time; the newest item's date, or now, if omitted

    Returns:
        Atom XML document
    """
    if updated is None:
        updated = items[0].published_at if items else datetime.now(timezone.utc)

    template = get_environment().get_template("atom.xml.j2")
    return template.render(items=items, title=title, link=link, updated=updated)


def write_atom(path: Union[str, Path], items: Sequence[Item], title: str, link: str) -> Path:
    """Render the merged Atom feed and atomically write it to ``path``."""
    xml = render_atom(items, title=title, link=link)
    path = atomic_write_text(path, xml)
    logger.info(f"wrote Atom feed with {len(items)} entries to {path}")
    return path
