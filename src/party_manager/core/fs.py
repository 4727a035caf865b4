"""Filesystem helpers shared by the installer and uninstaller."""

import os
import shutil
import stat
import sys
from pathlib import Path

from ..logging_config import get_logger

logger = get_logger("fs")


def _remove_readonly(func, path, _excinfo):
    """Error handler for shutil.rmtree to handle read-only files."""
    os.chmod(path, stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC)
    func(path)


def remove_tree(path: Path) -> bool:
    """Recursively delete a directory (or a single file or symlink).

    Read-only entries are made writable and retried once.

    Args:
        path: The directory to remove

    Returns:
        True if something was removed, False if the path was already absent

    Raises:
        OSError: If the tree could not be removed completely
    """
    path = Path(path)
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if not path.exists():
        return False

    logger.debug(f"Removing directory tree {path}")
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_remove_readonly)
    else:
        shutil.rmtree(path, onerror=_remove_readonly)
    return True
