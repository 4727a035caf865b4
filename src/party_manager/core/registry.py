"""Registry of installed games with atomic JSON storage.

The registry file (installed-games.json) is the single source of truth for
what is installed. It holds an ordered JSON array, one object per game::

    [
      {
        "gameId": "fakegame",
        "basePath": "/home/me/.party-manager/games/fakegame",
        "installPath": "/home/me/.party-manager/games/fakegame",
        "assetPaths": ["package.json", "game.html", "..."],
        "manifest": { ...package.json as it was at install time... }
      }
    ]

"installPath" is only present for games installed from a release archive.
Games registered in place with `add` only carry "basePath".

Nothing is cached between calls: every operation re-reads the file, and
every mutation writes the complete new list to a temp file that replaces
the old one, so a failed write never leaves a half-written registry.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .manifest import GameManifest
from ..errors import (
    DuplicateGame,
    GameNotFound,
    ManifestInvalid,
    RegistryAlreadyExists,
    RegistryCorrupt,
    RegistryMissing,
    RegistryWriteError,
)
from ..logging_config import get_logger

logger = get_logger("registry")


@dataclass
class InstalledGameEntry:
    """A game known to the registry"""
    game_id: str
    manifest: GameManifest
    base_path: Optional[Path] = None  # Directory the game is served from
    install_path: Optional[Path] = None  # Only set for archive installs

    @property
    def is_installed(self) -> bool:
        """True if the game was installed from a release archive."""
        return self.install_path is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"gameId": self.game_id}
        if self.base_path is not None:
            data["basePath"] = str(self.base_path)
        if self.install_path is not None:
            data["installPath"] = str(self.install_path)
        data["assetPaths"] = list(self.manifest.asset_paths)
        data["manifest"] = self.manifest.raw
        return data

    def to_listing(self) -> dict[str, Any]:
        """The package.json document merged with the registry fields.

        This is what `list --full` prints, so consumers can read sections
        such as "happyFunTimes" directly off each entry.
        """
        data = dict(self.manifest.raw)
        data.update(self.to_dict())
        del data["manifest"]
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "InstalledGameEntry":
        """Decode one registry element.

        Raises:
            ValueError: If the element does not describe a valid entry
        """
        if not isinstance(data, dict):
            raise ValueError("entry is not a JSON object")

        game_id = data.get("gameId")
        if not isinstance(game_id, str) or not game_id:
            raise ValueError("entry has no gameId")

        asset_paths = data.get("assetPaths", [])
        if not isinstance(asset_paths, list) or not all(isinstance(p, str) for p in asset_paths):
            raise ValueError(f"entry '{game_id}' has an invalid assetPaths list")

        try:
            manifest = GameManifest.from_dict(data.get("manifest"), asset_paths)
        except ManifestInvalid as e:
            raise ValueError(f"entry '{game_id}' has an invalid manifest: {e}") from e

        if manifest.game_id != game_id:
            raise ValueError(f"entry '{game_id}' holds the manifest of '{manifest.game_id}'")

        return cls(
            game_id=game_id,
            manifest=manifest,
            base_path=_optional_path(data, "basePath"),
            install_path=_optional_path(data, "installPath"),
        )


def _optional_path(data: dict, key: str) -> Optional[Path]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise ValueError(f"entry field '{key}' must be a non-empty string")
    return Path(value)


class GameRegistry:
    """Manages the installed games list file.

    One instance is constructed per registry file and handed to every
    component that reads or changes what is installed.

    Concurrent invocations from separate processes are not coordinated:
    the last writer wins.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        """True if the file exists and is not blank."""
        try:
            return bool(self.path.read_text(encoding="utf-8").strip())
        except FileNotFoundError:
            return False
        except (OSError, UnicodeDecodeError):
            return True

    def init(self) -> None:
        """Create a new, empty registry.

        Raises:
            RegistryAlreadyExists: If the registry file is already present
        """
        if self.exists():
            raise RegistryAlreadyExists(f"Installed games list already exists: {self.path}")

        self._write([])
        logger.info(f"Created empty installed games list at {self.path}")

    def list(self) -> list[InstalledGameEntry]:
        """Read all entries in insertion order.

        Raises:
            RegistryMissing: If the registry has not been initialized
            RegistryCorrupt: If the file does not hold a valid games list
        """
        return self._read()

    def find_by_id(self, game_id: str) -> Optional[InstalledGameEntry]:
        """Get an entry by game id.

        Returns:
            InstalledGameEntry or None if not found
        """
        for entry in self._read():
            if entry.game_id == game_id:
                return entry
        return None

    def add(self, entry: InstalledGameEntry) -> None:
        """Append an entry and persist the full list.

        Raises:
            DuplicateGame: If an entry with the same game id exists
        """
        entries = self._read()
        if any(e.game_id == entry.game_id for e in entries):
            raise DuplicateGame(f"Game '{entry.game_id}' is already in the installed games list")

        entries.append(entry)
        self._write(entries)
        logger.info(f"Registered game '{entry.game_id}'")

    def remove(self, game_id: str) -> InstalledGameEntry:
        """Remove an entry and persist the reduced list.

        Returns:
            The removed entry

        Raises:
            GameNotFound: If no entry has that game id
        """
        entries = self._read()
        for i, entry in enumerate(entries):
            if entry.game_id == game_id:
                removed = entries.pop(i)
                self._write(entries)
                logger.info(f"Unregistered game '{game_id}'")
                return removed

        raise GameNotFound(f"Game '{game_id}' is not in the installed games list")

    def _read(self) -> list[InstalledGameEntry]:
        """Load and decode the registry file."""
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise RegistryMissing(
                f"Installed games list {self.path} does not exist, run 'init-game-list' first"
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise RegistryCorrupt(f"Could not read installed games list {self.path}: {e}") from e

        if not content.strip():
            raise RegistryMissing(f"Installed games list {self.path} is empty, run 'init-game-list' first")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise RegistryCorrupt(f"Installed games list {self.path} is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise RegistryCorrupt(f"Installed games list {self.path} must hold a JSON array")

        entries = []
        seen = set()
        for index, item in enumerate(data):
            try:
                entry = InstalledGameEntry.from_dict(item)
            except ValueError as e:
                raise RegistryCorrupt(f"Installed games list {self.path}, element {index}: {e}") from e
            if entry.game_id in seen:
                raise RegistryCorrupt(f"Installed games list {self.path} lists '{entry.game_id}' twice")
            seen.add(entry.game_id)
            entries.append(entry)

        logger.debug(f"Loaded {len(entries)} entries from {self.path}")
        return entries

    def _write(self, entries: list[InstalledGameEntry]) -> None:
        """Persist the complete list atomically.

        Write to a temp file in the same directory, sync to disk, then
        rename over the old file.
        """
        content = json.dumps([e.to_dict() for e in entries], indent=2) + "\n"
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode='w', encoding='utf-8', dir=self.path.parent, delete=False,
                prefix=f".{self.path.name}.", suffix='.tmp',
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, self.path)
            logger.debug(f"Saved {len(entries)} entries to {self.path}")
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise RegistryWriteError(f"Failed to write installed games list {self.path}: {e}") from e
