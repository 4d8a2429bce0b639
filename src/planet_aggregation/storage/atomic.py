"""
Atomic file replacement.

Data is written to a temporary file in the target directory, flushed to disk
and renamed over the target, so readers see either the old or the new content.
"""

import os
import tempfile
from pathlib import Path
from typing import Union


def atomic_write_bytes(path: Union[str, Path], data: bytes, mode: int = 0o644) -> Path:
    """Atomically replace ``path`` with ``data``.

    Missing parent directories are created.

    Args:
        path: Target file path
        data: File content
        mode: Permission bits of the new file

    Returns:
        The target path

    Raises:
        OSError: If the directory or file cannot be written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise

    return path


def atomic_write_text(path: Union[str, Path], text: str, mode: int = 0o644) -> Path:
    """Atomically replace ``path`` with UTF-8 encoded ``text``."""
    return atomic_write_bytes(path, text.encode("utf-8"), mode=mode)
