"""Game manifest (package.json) decoding and asset enumeration.

Every game directory holds a package.json. The fields Party Manager reads
live in its "happyFunTimes" section::

    {
        "name": "Fake Game",
        "version": "0.0.1",
        "happyFunTimes": {
            "gameId": "fakegame",
            "gameType": "html",
            "files": ["*.html", "css/*", "scripts/**"]
        }
    }

Decoding is strict: GameManifest.from_dict either returns a fully validated
record or raises ManifestInvalid, so nothing downstream sees raw JSON.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Optional

from ..config.path_validator import is_safe_relative_path, validate_game_id
from ..config.paths import AppPaths
from ..errors import ManifestInvalid, ManifestNotFound
from ..logging_config import get_logger

logger = get_logger("manifest")

MANIFEST_SECTION = "happyFunTimes"
GLOB_CHARS = ("*", "?", "[")


@dataclass(frozen=True)
class GameManifest:
    """Validated contents of a game's package.json"""
    game_id: str
    name: str
    version: Optional[str] = None
    description: str = ""
    game_type: str = "html"
    api_version: Optional[str] = None
    category: str = "game"
    icon: str = "icon.png"
    screenshot: str = "screenshot.png"
    file_patterns: tuple[str, ...] = ()  # As declared, empty means "everything"
    asset_paths: tuple[str, ...] = ()  # Resolved POSIX relative paths
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Any, asset_paths: Iterable[str] = ()) -> "GameManifest":
        """Decode a parsed package.json document.

        Args:
            data: The decoded JSON document
            asset_paths: Already resolved asset list (e.g. from a registry snapshot)

        Returns:
            A validated GameManifest

        Raises:
            ManifestInvalid: If required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise ManifestInvalid("package.json must contain a JSON object")

        section = data.get(MANIFEST_SECTION)
        if not isinstance(section, dict):
            raise ManifestInvalid(f"package.json has no '{MANIFEST_SECTION}' section")

        game_id = section.get("gameId")
        if game_id is None:
            raise ManifestInvalid(f"package.json is missing {MANIFEST_SECTION}.gameId")
        is_valid, error = validate_game_id(game_id)
        if not is_valid:
            raise ManifestInvalid(f"Invalid {MANIFEST_SECTION}.gameId: {error}")

        files = section.get("files")
        if files is None:
            file_patterns: tuple[str, ...] = ()
        elif isinstance(files, list) and all(isinstance(f, str) and f for f in files):
            file_patterns = tuple(files)
        else:
            raise ManifestInvalid(f"{MANIFEST_SECTION}.files must be a list of non-empty strings")

        for pattern in file_patterns:
            if not is_safe_relative_path(pattern):
                raise ManifestInvalid(f"{MANIFEST_SECTION}.files entry '{pattern}' escapes the game directory")

        return cls(
            game_id=game_id,
            name=_get_str(data, "name", game_id),
            version=_get_str(data, "version", None),
            description=_get_str(data, "description", ""),
            game_type=_get_str(section, "gameType", "html", MANIFEST_SECTION),
            api_version=_get_str(section, "apiVersion", None, MANIFEST_SECTION),
            category=_get_str(section, "category", "game", MANIFEST_SECTION),
            icon=_get_str(section, "icon", "icon.png", MANIFEST_SECTION),
            screenshot=_get_str(section, "screenshot", "screenshot.png", MANIFEST_SECTION),
            file_patterns=file_patterns,
            asset_paths=tuple(asset_paths),
            raw=data,
        )

    def summary(self) -> dict[str, Any]:
        """Short description used by the plain game listing."""
        return {
            "gameId": self.game_id,
            "name": self.name,
            "version": self.version,
            "gameType": self.game_type,
        }


def _get_str(section: dict, key: str, default: Optional[str], prefix: str = "") -> Optional[str]:
    """Read an optional string field, rejecting other JSON types."""
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        name = f"{prefix}.{key}" if prefix else key
        raise ManifestInvalid(f"package.json field '{name}' must be a string")
    return value


class ManifestReader:
    """Load game manifests from source or installed directories.

    Reading never modifies the directory.
    """

    def read(self, source_dir: Path, exclude_dirs: Iterable[Path] = ()) -> GameManifest:
        """Read and decode the manifest of a game directory.

        Args:
            source_dir: Directory containing package.json
            exclude_dirs: Directories whose files are left out of the asset list

        Returns:
            GameManifest with asset_paths resolved against source_dir

        Raises:
            ManifestNotFound: If there is no package.json
            ManifestInvalid: If package.json cannot be decoded
        """
        source_dir = Path(source_dir)
        data = self.load_document(source_dir)
        manifest = GameManifest.from_dict(data)

        asset_paths = resolve_asset_paths(source_dir, manifest.file_patterns, exclude_dirs)
        logger.debug(f"Manifest for '{manifest.game_id}' lists {len(asset_paths)} assets")
        return GameManifest.from_dict(data, asset_paths)

    def load_document(self, source_dir: Path) -> Any:
        """Read the raw JSON document of a game directory."""
        manifest_path = Path(source_dir) / AppPaths.MANIFEST_FILE
        if not manifest_path.is_file():
            raise ManifestNotFound(f"No {AppPaths.MANIFEST_FILE} found in {source_dir}")

        logger.debug(f"Reading manifest {manifest_path}")
        try:
            with open(manifest_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ManifestInvalid(f"{manifest_path} is not valid JSON: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestInvalid(f"Could not read {manifest_path}: {e}") from e


def _is_hidden(relative_path: str) -> bool:
    return any(part.startswith(".") for part in relative_path.split("/"))


def _is_excluded(path: Path, exclude_dirs: list[Path]) -> bool:
    resolved = path.resolve()
    return any(resolved == d or d in resolved.parents for d in exclude_dirs)


def walk_files(source_dir: Path, exclude_dirs: Iterable[Path] = ()) -> list[str]:
    """List every non-hidden file under a directory.

    Returns:
        POSIX relative paths sorted lexicographically
    """
    excluded = [Path(d).resolve() for d in exclude_dirs]
    found = []
    for dirpath, dirnames, filenames in os.walk(source_dir):
        current = Path(dirpath)
        dirnames[:] = [
            d for d in dirnames
            if not d.startswith(".") and not _is_excluded(current / d, excluded)
        ]
        for filename in filenames:
            if filename.startswith("."):
                continue
            found.append((current / filename).relative_to(source_dir).as_posix())
    return sorted(found)


def _match_files(pattern: str) -> str:
    """Make a trailing "**" match the files below it, not only directories."""
    if pattern == "**" or pattern.endswith("/**"):
        return pattern + "/*"
    return pattern


def resolve_asset_paths(
    source_dir: Path,
    file_patterns: Iterable[str] = (),
    exclude_dirs: Iterable[Path] = (),
) -> tuple[str, ...]:
    """Resolve the ordered list of files that make up a game.

    With no patterns the whole tree is walked. Otherwise explicit paths keep
    their declared order and glob patterns expand to their sorted matches.
    The manifest file itself is always first unless already listed.

    Args:
        source_dir: Game directory
        file_patterns: Entries of happyFunTimes.files
        exclude_dirs: Directories to leave out (e.g. a release dir inside the game)

    Returns:
        Tuple of unique POSIX relative paths
    """
    source_dir = Path(source_dir)
    excluded = [Path(d).resolve() for d in exclude_dirs]
    patterns = list(file_patterns)

    if not patterns:
        candidates = walk_files(source_dir, excluded)
    else:
        candidates = []
        for pattern in patterns:
            pattern = pattern.replace("\\", "/")
            if any(ch in pattern for ch in GLOB_CHARS):
                matches = sorted(
                    p.relative_to(source_dir).as_posix()
                    for p in source_dir.glob(_match_files(pattern))
                    if p.is_file()
                )
                matches = [m for m in matches if not _is_hidden(m)]
                if not matches:
                    logger.warning(f"Pattern '{pattern}' matched no files in {source_dir}")
                candidates.extend(matches)
            else:
                candidates.append(PurePosixPath(pattern).as_posix())

    result: list[str] = []
    seen = set()
    for relative_path in candidates:
        if relative_path in seen:
            continue
        if excluded and _is_excluded(source_dir / relative_path, excluded):
            continue
        seen.add(relative_path)
        result.append(relative_path)

    if AppPaths.MANIFEST_FILE not in seen:
        result.insert(0, AppPaths.MANIFEST_FILE)

    return tuple(result)
