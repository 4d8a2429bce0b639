"""
Feed snapshot cache.

Each feed's last successfully normalized snapshot is stored as JSON at
``<base_dir>/<subdir>/<short_name>.json``. The file's mtime doubles as the
If-Modified-Since marker for the next fetch.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from planet_aggregation.exceptions import CacheCorruptError, CacheMissError, CacheWriteError
from planet_aggregation.logger import get_logger
from planet_aggregation.models import Feed
from planet_aggregation.storage.atomic import atomic_write_bytes

logger = get_logger(__name__)


class CacheStore:
    """File-backed store of normalized feed snapshots."""

    def __init__(self, base_dir: Union[str, Path], subdir: str = "plnt"):
        """Initialize cache store.

        Args:
            base_dir: Resolved base cache directory
            subdir: Directory below base_dir holding the snapshot files
        """
        self.base_dir = Path(base_dir)
        self.subdir = subdir

    @property
    def root(self) -> Path:
        """Directory holding the snapshot files."""
        return self.base_dir / self.subdir

    def locate(self, short_name: str) -> Path:
        """Get the cache file path for a feed."""
        return self.root / f"{short_name}.json"

    def last_modified(self, short_name: str) -> Optional[datetime]:
        """Get the modification time of a feed's cache entry.

        Returns:
            UTC datetime, or None if there is no entry
        """
        try:
            mtime = self.locate(short_name).stat().st_mtime
        except OSError:
            return None
        return datetime.fromtimestamp(mtime, tz=timezone.utc)

    def load(self, short_name: str) -> Feed:
        """Load a feed's cached snapshot.

        Raises:
            CacheMissError: If there is no readable entry
            CacheCorruptError: If the entry is not a valid feed snapshot
        """
        path = self.locate(short_name)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            raise CacheMissError(short_name, f"{path} does not exist") from None
        except OSError as e:
            raise CacheMissError(short_name, f"cannot read {path}: {e}") from e

        try:
            return Feed.model_validate_json(data)
        except ValidationError as e:
            raise CacheCorruptError(short_name, f"{path} is corrupt: {e}") from e

    def store(self, short_name: str, feed: Feed) -> Path:
        """Atomically replace a feed's cache entry.

        Raises:
            CacheWriteError: If the entry cannot be written
        """
        path = self.locate(short_name)
        data = feed.model_dump_json().encode("utf-8")
        try:
            atomic_write_bytes(path, data)
        except OSError as e:
            raise CacheWriteError(short_name, f"{path}: {e}") from e

        logger.debug(f"[{short_name}] cached {len(feed.items)} items in {path}")
        return path
