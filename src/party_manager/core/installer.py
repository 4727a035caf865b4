"""Install release archives into an install root, and uninstall them again.

An install is a transaction of filesystem steps followed by registration.
Every step has a rollback, so a failed install leaves neither files under
the install root nor an entry in the registry::

    install root/
        .fakegame.k3j2l1.partial/   <- staging dir, extraction happens here
            fakegame/...
        fakegame/                   <- staged tree renamed into place
"""

import json
import os
import shutil
import tempfile
import zipfile
import zlib
from pathlib import Path

from .fs import remove_tree
from .manifest import GameManifest, ManifestReader
from .registry import GameRegistry, InstalledGameEntry
from .transaction import Transaction
from ..config.path_validator import is_safe_archive_member, validate_game_id
from ..config.paths import AppPaths
from ..errors import (
    AlreadyInstalled,
    ArchiveMalformed,
    ArchiveUnreadable,
    DuplicateGame,
    GameNotFound,
    InstallIOError,
    ManifestInvalid,
    ManifestNotFound,
    NotInstalled,
    UninstallIOError,
)
from ..logging_config import get_logger

logger = get_logger("installer")

# Errors zipfile raises for damaged member data during extraction
ARCHIVE_DATA_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError)


def inspect_archive(zf: zipfile.ZipFile) -> tuple[str, tuple[str, ...]]:
    """Validate the layout of a release archive.

    Every entry must live under a single top-level folder named after a
    valid game id, and that folder must hold the package.json manifest.

    Args:
        zf: An open zip file

    Returns:
        Tuple of (game_id, asset paths relative to the game folder)

    Raises:
        ArchiveMalformed: If the layout is not a single-game release
    """
    names = zf.namelist()
    if not names:
        raise ArchiveMalformed("Archive is empty")

    top_level_items = set()
    for name in names:
        if not is_safe_archive_member(name):
            raise ArchiveMalformed(f"Archive entry '{name}' points outside the game folder")
        if "/" not in name:
            raise ArchiveMalformed(f"Archive entry '{name}' is a file outside of a game folder")
        top_level_items.add(name.split("/")[0])

    if len(top_level_items) != 1:
        found = ", ".join(sorted(top_level_items))
        raise ArchiveMalformed(f"Archive must contain exactly one top-level folder, found: {found}")

    game_id = top_level_items.pop()
    is_valid, error = validate_game_id(game_id)
    if not is_valid:
        raise ArchiveMalformed(f"Archive folder is not a valid game id: {error}")

    if f"{game_id}/{AppPaths.MANIFEST_FILE}" not in names:
        raise ArchiveMalformed(f"Archive has no {game_id}/{AppPaths.MANIFEST_FILE}")

    prefix = f"{game_id}/"
    asset_paths = tuple(
        name[len(prefix):] for name in names
        if not name.endswith("/") and name.startswith(prefix)
    )
    return game_id, asset_paths


class Installer:
    """Install release archives and register them.

    Both the install root directory and the registry are checked before
    anything is written, since the two can diverge.
    """

    def __init__(self, registry: GameRegistry, reader: ManifestReader | None = None):
        self.registry = registry
        self.reader = reader or ManifestReader()

    def install(self, archive_path: Path, install_root: Path, dry_run: bool = False) -> InstalledGameEntry:
        """Install a release archive.

        Args:
            archive_path: Path to the release zip
            install_root: Directory that receives the <gameId> folder
            dry_run: If True, validate only and change nothing

        Returns:
            The registry entry for the installed game

        Raises:
            ArchiveUnreadable: If the file is missing or not a zip archive
            ArchiveMalformed: If the archive layout or manifest is invalid
            AlreadyInstalled: If the game is on disk or in the registry already
            RegistryMissing: If the installed games list was never initialized
            InstallIOError: If extraction fails
        """
        archive_path = Path(archive_path).absolute()
        install_root = Path(install_root).absolute()

        if not archive_path.is_file():
            raise ArchiveUnreadable(f"Archive not found: {archive_path}")

        try:
            zf = zipfile.ZipFile(archive_path, 'r')
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveUnreadable(f"'{archive_path.name}' is not a valid zip file: {e}") from e

        with zf:
            game_id, asset_paths = inspect_archive(zf)
            target = install_root / game_id
            self._check_not_installed(game_id, target)

            if dry_run:
                manifest = self._manifest_from_archive(zf, game_id, asset_paths)
                logger.info(f"Dry run: would install '{game_id}' to {target}")
                return InstalledGameEntry(game_id, manifest, base_path=target, install_path=target)

            logger.info(f"Installing '{game_id}' from {archive_path} to {target}")
            entry = self._install(zf, game_id, asset_paths, install_root, target)

        logger.info(f"Installed '{game_id}' ({len(asset_paths)} files)")
        return entry

    def _check_not_installed(self, game_id: str, target: Path) -> None:
        if self.registry.find_by_id(game_id) is not None:
            raise AlreadyInstalled(f"Game '{game_id}' is already installed")
        if target.exists() or target.is_symlink():
            raise AlreadyInstalled(
                f"Directory {target} already exists but '{game_id}' is not in the installed games list"
            )

    def _install(self, zf: zipfile.ZipFile, game_id: str, asset_paths: tuple[str, ...],
                 install_root: Path, target: Path) -> InstalledGameEntry:
        try:
            with Transaction(f"install {game_id}") as tx:
                tx.step("create install root",
                        lambda: install_root.mkdir(parents=True, exist_ok=True))
                staging = tx.step(
                    "create staging directory",
                    lambda: Path(tempfile.mkdtemp(prefix=f".{game_id}.", suffix=".partial", dir=install_root)),
                    undo=lambda: remove_tree(staging),
                )
                tx.step("extract archive", lambda: self._extract(zf, staging))
                manifest = tx.step("read installed manifest",
                                   lambda: self._read_back(staging / game_id, game_id, asset_paths))
                tx.step("move game into place",
                        lambda: os.rename(staging / game_id, target),
                        undo=lambda: remove_tree(target))
                tx.step("remove staging directory", staging.rmdir)

                entry = InstalledGameEntry(game_id, manifest, base_path=target, install_path=target)
                tx.step("register game", lambda: self.registry.add(entry))
        except DuplicateGame as e:
            raise AlreadyInstalled(f"Game '{game_id}' is already installed") from e
        except ARCHIVE_DATA_ERRORS as e:
            raise ArchiveUnreadable(f"Archive data for '{game_id}' is damaged: {e}") from e
        except OSError as e:
            raise InstallIOError(f"Failed to install '{game_id}': {e}") from e

        return entry

    @staticmethod
    def _extract(zf: zipfile.ZipFile, dest: Path) -> None:
        """Recreate every archive entry under dest."""
        for info in zf.infolist():
            target = dest / info.filename
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Extracting {info.filename}")
            with zf.open(info) as src, open(target, 'wb') as dst:
                shutil.copyfileobj(src, dst)

    def _read_back(self, game_dir: Path, game_id: str, asset_paths: tuple[str, ...]) -> GameManifest:
        """Decode the manifest from the extracted files."""
        try:
            manifest = GameManifest.from_dict(self.reader.load_document(game_dir), asset_paths)
        except (ManifestNotFound, ManifestInvalid) as e:
            raise ArchiveMalformed(f"Archive manifest is invalid: {e}") from e

        if manifest.game_id != game_id:
            raise ArchiveMalformed(
                f"Archive folder '{game_id}' holds the manifest of '{manifest.game_id}'"
            )
        return manifest

    @staticmethod
    def _manifest_from_archive(zf: zipfile.ZipFile, game_id: str, asset_paths: tuple[str, ...]) -> GameManifest:
        try:
            data = json.loads(zf.read(f"{game_id}/{AppPaths.MANIFEST_FILE}").decode("utf-8"))
            manifest = GameManifest.from_dict(data, asset_paths)
        except ARCHIVE_DATA_ERRORS as e:
            raise ArchiveUnreadable(f"Archive data for '{game_id}' is damaged: {e}") from e
        except (ValueError, ManifestInvalid) as e:
            raise ArchiveMalformed(f"Archive manifest is invalid: {e}") from e

        if manifest.game_id != game_id:
            raise ArchiveMalformed(
                f"Archive folder '{game_id}' holds the manifest of '{manifest.game_id}'"
            )
        return manifest


class Uninstaller:
    """Remove installed games from disk and from the registry.

    Files are removed before the registry entry, so a failed removal leaves
    the game listed and the operator can retry.
    """

    def __init__(self, registry: GameRegistry):
        self.registry = registry

    def uninstall(self, game_id: str, install_root: Path, dry_run: bool = False) -> InstalledGameEntry:
        """Uninstall a game.

        Args:
            game_id: Id of the installed game
            install_root: Directory holding the <gameId> folder
            dry_run: If True, report only and change nothing

        Returns:
            The registry entry that was removed

        Raises:
            GameNotFound: If the game is not in the registry
            NotInstalled: If the game was added in place rather than installed
            UninstallIOError: If the game directory could not be removed
        """
        entry = self.registry.find_by_id(game_id)
        if entry is None:
            raise GameNotFound(f"Game '{game_id}' is not installed")

        if not entry.is_installed:
            raise NotInstalled(
                f"Game '{game_id}' was added from {entry.base_path}, use 'remove' to unregister it"
            )

        target = Path(install_root).absolute() / game_id
        if entry.install_path != target:
            logger.warning(
                f"'{game_id}' was installed to {entry.install_path}, not under {install_root}"
            )
            target = entry.install_path

        if target.name != game_id:
            raise UninstallIOError(f"Refusing to remove {target}: folder name is not '{game_id}'")

        if dry_run:
            logger.info(f"Dry run: would remove {target} and unregister '{game_id}'")
            return entry

        try:
            removed = remove_tree(target)
        except OSError as e:
            raise UninstallIOError(f"Failed to remove {target}: {e}") from e

        if removed:
            logger.info(f"Removed {target}")
        else:
            logger.warning(f"{target} was already gone")

        self.registry.remove(game_id)
        logger.info(f"Uninstalled '{game_id}'")
        return entry
