"""Release packaging of game source directories into zip archives."""

import os
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .manifest import GameManifest, ManifestReader
from .transaction import Transaction
from ..config.path_validator import is_path_under_root, sanitize_filename
from ..config.paths import AppPaths
from ..errors import BuildIOError, ManifestNotFound
from ..logging_config import get_logger

logger = get_logger("release")


@dataclass(frozen=True)
class ReleaseArchive:
    """A packaged release of one game"""
    filename: Path  # Absolute path of the archive
    game_id: str
    version: Optional[str]
    entries: tuple[str, ...]  # Archive entry names, all under "<game_id>/"

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": str(self.filename),
            "gameId": self.game_id,
            "version": self.version,
            "files": len(self.entries),
        }


def release_filename(manifest: GameManifest) -> str:
    """Archive file name for a game, e.g. "fakegame-0.0.1.zip"."""
    if manifest.version:
        return sanitize_filename(f"{manifest.game_id}-{manifest.version}") + ".zip"
    return f"{manifest.game_id}.zip"


class ReleaseBuilder:
    """Build release archives from game source directories.

    Every asset listed by the manifest is stored as "<gameId>/<relative path>".
    The archive is written to a hidden temp file next to its destination and
    only renamed into place once complete.
    """

    def __init__(self, reader: ManifestReader | None = None):
        self.reader = reader or ManifestReader()

    def discover(self, src: Path) -> list[Path]:
        """Find the game directories to package.

        Args:
            src: A game directory, or a directory whose subdirectories are games

        Returns:
            Game directories in a stable (sorted) order

        Raises:
            ManifestNotFound: If src holds no game at all
        """
        src = Path(src)
        if (src / AppPaths.MANIFEST_FILE).is_file():
            return [src]

        if not src.is_dir():
            raise ManifestNotFound(f"Game source directory does not exist: {src}")

        games = sorted(
            child for child in src.iterdir()
            if child.is_dir() and (child / AppPaths.MANIFEST_FILE).is_file()
        )
        if not games:
            raise ManifestNotFound(f"No {AppPaths.MANIFEST_FILE} found in {src} or its subdirectories")

        logger.info(f"Found {len(games)} games under {src}")
        return games

    def build_all(self, src: Path, dest_dir: Path) -> list[ReleaseArchive]:
        """Build one archive per game found under src."""
        return [self.build(game_dir, dest_dir) for game_dir in self.discover(src)]

    def build(self, source_dir: Path, dest_dir: Path) -> ReleaseArchive:
        """Package a game directory into a release archive.

        Args:
            source_dir: Game directory containing package.json
            dest_dir: Directory to write the archive into (created if missing)

        Returns:
            ReleaseArchive describing the written file

        Raises:
            ManifestNotFound: If source_dir has no package.json
            ManifestInvalid: If package.json cannot be decoded
            BuildIOError: If an asset is unreadable or dest_dir is not writable
        """
        source_dir = Path(source_dir).absolute()
        dest_dir = Path(dest_dir).absolute()

        exclude = [dest_dir] if is_path_under_root(dest_dir, source_dir) else []
        manifest = self.reader.read(source_dir, exclude_dirs=exclude)

        self._check_assets(source_dir, manifest)

        archive_path = dest_dir / release_filename(manifest)
        entries = tuple(f"{manifest.game_id}/{p}" for p in manifest.asset_paths)

        logger.info(
            f"Building release of '{manifest.game_id}' ({len(entries)} files) to {archive_path}"
        )

        try:
            with Transaction(f"release {manifest.game_id}") as tx:
                tx.step("create destination directory",
                        lambda: dest_dir.mkdir(parents=True, exist_ok=True))
                tmp_path = tx.step("create temp archive",
                                   lambda: self._create_temp_file(dest_dir, archive_path.name),
                                   undo=lambda: _unlink_if_exists(tmp_path))
                tx.step("write archive entries",
                        lambda: self._write_archive(tmp_path, source_dir, manifest))
                tx.step("move archive into place",
                        lambda: os.replace(tmp_path, archive_path))
        except (OSError, zipfile.BadZipFile) as e:
            raise BuildIOError(f"Failed to build release of '{manifest.game_id}': {e}") from e

        logger.info(f"Release written: {archive_path}")
        return ReleaseArchive(
            filename=archive_path,
            game_id=manifest.game_id,
            version=manifest.version,
            entries=entries,
        )

    def _check_assets(self, source_dir: Path, manifest: GameManifest) -> None:
        """Every listed asset must be a regular, readable file."""
        for relative_path in manifest.asset_paths:
            path = source_dir / relative_path
            if not path.is_file():
                raise BuildIOError(f"Asset '{relative_path}' of '{manifest.game_id}' is missing or not a file")
            if not os.access(path, os.R_OK):
                raise BuildIOError(f"Asset '{relative_path}' of '{manifest.game_id}' is not readable")

    @staticmethod
    def _create_temp_file(dest_dir: Path, final_name: str) -> Path:
        fd, name = tempfile.mkstemp(prefix=f".{final_name}.", suffix=".tmp", dir=dest_dir)
        os.close(fd)
        return Path(name)

    @staticmethod
    def _write_archive(archive_path: Path, source_dir: Path, manifest: GameManifest) -> None:
        with zipfile.ZipFile(archive_path, 'w', zipfile.ZIP_DEFLATED, strict_timestamps=False) as zf:
            for relative_path in manifest.asset_paths:
                arcname = f"{manifest.game_id}/{relative_path}"
                logger.debug(f"Adding {arcname}")
                zf.write(source_dir / relative_path, arcname)


def _unlink_if_exists(path: Path) -> None:
    if path.exists():
        path.unlink()
