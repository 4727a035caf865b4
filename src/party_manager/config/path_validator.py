"""Path validation utilities to prevent dangerous file operations.

Provides validation for names and paths used in file operations to prevent:
- Path traversal through game ids or archive entries
- Deleting or writing outside the install root
- Unsafe characters in generated file names
"""

import re
from pathlib import Path, PurePosixPath

from ..logging_config import get_logger

logger = get_logger("path_validator")

GAME_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
MAX_GAME_ID_LENGTH = 128
MAX_FILENAME_LENGTH = 200
UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\0\s]')


def validate_game_id(game_id: object) -> tuple[bool, str]:
    """Validate a game id for use as a folder and archive root name.

    Args:
        game_id: The candidate game id

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(game_id, str):
        return False, f"gameId must be a string, got {type(game_id).__name__}"

    if not game_id:
        return False, "gameId is empty"

    if game_id in (".", ".."):
        return False, f"gameId '{game_id}' is a reserved path name"

    if "/" in game_id or "\\" in game_id:
        return False, f"gameId '{game_id}' contains a path separator"

    if len(game_id) > MAX_GAME_ID_LENGTH:
        return False, f"gameId is longer than {MAX_GAME_ID_LENGTH} characters"

    if not GAME_ID_PATTERN.match(game_id):
        return False, f"gameId '{game_id}' may only contain letters, digits, '.', '_' and '-'"

    return True, ""


def is_path_under_root(path: Path, root: Path) -> bool:
    """Check whether path is root itself or lies somewhere below it.

    Both paths are resolved first, so symlinks and ".." are followed.
    """
    try:
        Path(path).resolve().relative_to(Path(root).resolve())
    except ValueError:
        return False
    except OSError as e:
        logger.warning(f"Could not resolve {path} against {root}: {e}")
        return False
    return True


def is_safe_relative_path(relative_path: str) -> bool:
    """Check that a relative path stays inside the directory it is joined to.

    Args:
        relative_path: POSIX or native relative path

    Returns:
        True if the path is relative and contains no '..' components
    """
    if not relative_path:
        return False

    normalized = relative_path.replace("\\", "/")
    if normalized.startswith("/") or re.match(r"^[A-Za-z]:", normalized):
        return False

    return ".." not in PurePosixPath(normalized).parts


def is_safe_archive_member(name: str) -> bool:
    """Check an archive entry name before it is extracted.

    Args:
        name: Entry name as stored in the zip file

    Returns:
        True if extracting the entry cannot escape the target directory
    """
    if "\0" in name or "\\" in name:
        return False
    return is_safe_relative_path(name)


def sanitize_filename(filename: str) -> str:
    """Make a string usable as a single file name component.

    Path separators, characters Windows forbids in names, NUL and whitespace
    become underscores. Leading and trailing dots are dropped so the result
    is never hidden or a relative path name.

    Args:
        filename: The candidate file name, e.g. "<gameId>-<version>"

    Returns:
        Sanitized file name, "unnamed" if nothing usable is left
    """
    result = UNSAFE_FILENAME_CHARS.sub("_", filename).strip(".")[:MAX_FILENAME_LENGTH]
    return result or "unnamed"
