"""Command line entry point and orchestrator"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional, TextIO

from .config.manager import ConfigurationManager
from .config.paths import AppPaths
from .config.schema import AppConfiguration
from .core.asset_check import AssetChecker
from .core.installer import Installer, Uninstaller
from .core.manifest import GameManifest, ManifestReader
from .core.registry import GameRegistry, InstalledGameEntry
from .core.release import ReleaseBuilder
from .errors import PartyManagerError
from .logging_config import setup_logging, get_logger
from . import __app_name__, __version__

logger = get_logger("app")


class PartyManagerApp:
    """Main application orchestrator.

    Resolves configuration, builds the registry handle and runs one
    command to completion.
    """

    def __init__(self, config_manager: ConfigurationManager, out: Optional[TextIO] = None):
        self.config_manager = config_manager
        self.out = out or sys.stdout
        self._config: Optional[AppConfiguration] = None

    @property
    def config(self) -> AppConfiguration:
        if self._config is None:
            self._config = self.config_manager.load_or_default()
        return self._config

    @property
    def registry(self) -> GameRegistry:
        return GameRegistry(self.config.game_list_path)

    def run(self, args: argparse.Namespace) -> int:
        """Run the command selected on the command line.

        Returns:
            Process exit code
        """
        handlers = {
            "init-config": self.cmd_init_config,
            "init-game-list": self.cmd_init_game_list,
            "list": self.cmd_list,
            "add": self.cmd_add,
            "remove": self.cmd_remove,
            "check": self.cmd_check,
            "make-release": self.cmd_make_release,
            "install": self.cmd_install,
            "uninstall": self.cmd_uninstall,
        }
        handlers[args.command](args)
        return 0

    # Commands

    def cmd_init_config(self, args: argparse.Namespace) -> None:
        self.config_manager.create_default(
            install_dir=args.install_dir,
            game_list_path=args.game_list,
            release_dir=args.release_dir,
        )
        self.config_manager.save(overwrite=args.force)
        self._print(f"Wrote configuration to {self.config_manager.config_path}")

    def cmd_init_game_list(self, args: argparse.Namespace) -> None:
        self.registry.init()
        self._print(f"Created empty installed games list at {self.config.game_list_path}")

    def cmd_list(self, args: argparse.Namespace) -> None:
        entries = self.registry.list()

        if args.full:
            self._print_json([entry.to_listing() for entry in entries])
            return

        if args.json:
            self._print_json([self._summarize(entry) for entry in entries])
            return

        if not entries:
            self._print("No games installed.")
            return

        self._print(f"{'Game Id':<24} | {'Version':<10} | {'Type':<8} | Path")
        self._print("-" * 70)
        for entry in entries:
            manifest = entry.manifest
            self._print(
                f"{entry.game_id:<24} | {manifest.version or '-':<10} | "
                f"{manifest.game_type:<8} | {entry.base_path or ''}"
            )

    def cmd_add(self, args: argparse.Namespace) -> None:
        source_dir = Path(args.path).absolute()
        manifest = ManifestReader().read(source_dir)
        entry = InstalledGameEntry(manifest.game_id, manifest, base_path=source_dir)
        self.registry.add(entry)
        self._print(f"Added '{manifest.game_id}' from {source_dir}")

    def cmd_remove(self, args: argparse.Namespace) -> None:
        game_id = self._resolve_game_id(args.game)
        entry = self.registry.remove(game_id)
        if entry.is_installed:
            logger.warning(
                f"'{game_id}' was installed from an archive, its files remain in {entry.install_path}"
            )
        self._print(f"Removed '{game_id}'")

    def cmd_check(self, args: argparse.Namespace) -> None:
        report = AssetChecker().check(Path(args.path))
        if args.json:
            self._print_json(report.to_dict())
            return

        self._print(f"'{report.manifest.game_id}': {len(report.manifest.asset_paths)} files OK")
        for image in report.images:
            self._print(f"  {image.path}: {image.format} {image.width}x{image.height}")

    def cmd_make_release(self, args: argparse.Namespace) -> None:
        dest_dir = Path(args.dest) if args.dest else self.config.release_dir
        archives = ReleaseBuilder().build_all(Path(args.src), dest_dir)

        if args.json:
            self._print_json([archive.to_dict() for archive in archives])
            return

        for archive in archives:
            self._print(f"Created {archive.filename} ({len(archive.entries)} files)")

    def cmd_install(self, args: argparse.Namespace) -> None:
        installer = Installer(self.registry)
        entry = installer.install(Path(args.archive), self.config.install_dir, dry_run=args.dry_run)
        verb = "Would install" if args.dry_run else "Installed"
        self._print(f"{verb} '{entry.game_id}' to {entry.install_path}")

    def cmd_uninstall(self, args: argparse.Namespace) -> None:
        uninstaller = Uninstaller(self.registry)
        entry = uninstaller.uninstall(args.game_id, self.config.install_dir, dry_run=args.dry_run)
        verb = "Would uninstall" if args.dry_run else "Uninstalled"
        self._print(f"{verb} '{entry.game_id}'")

    # Helpers

    @staticmethod
    def _resolve_game_id(game: str) -> str:
        """Accept either a game source directory or a game id.

        A directory without a package.json is not a game, so the argument
        is taken as an id.
        """
        path = Path(game)
        if (path / AppPaths.MANIFEST_FILE).is_file():
            reader = ManifestReader()
            return GameManifest.from_dict(reader.load_document(path)).game_id
        return game

    @staticmethod
    def _summarize(entry: InstalledGameEntry) -> dict[str, Any]:
        summary = entry.manifest.summary()
        summary["basePath"] = str(entry.base_path) if entry.base_path else None
        summary["installed"] = entry.is_installed
        return summary

    def _print(self, text: str) -> None:
        print(text, file=self.out)

    def _print_json(self, data: Any) -> None:
        print(json.dumps(data, indent=2), file=self.out)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for all commands."""
    # Shared options are accepted before or after the command name.
    # SUPPRESS keeps a subcommand's defaults from overwriting values
    # given before the command.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config-path", default=argparse.SUPPRESS,
                        help="configuration file to use")
    common.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS,
                        help="log progress to stderr")

    parser = argparse.ArgumentParser(
        prog="party-manager",
        description=f"{__app_name__}: install, package and manage party games",
        parents=[common],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True, metavar="command")

    sub = subparsers.add_parser("init-config", parents=[common], help="write a default configuration file")
    sub.add_argument("--install-dir", help="directory games are installed into")
    sub.add_argument("--game-list", help="installed games list file")
    sub.add_argument("--release-dir", help="default directory for make-release")
    sub.add_argument("--force", action="store_true", help="overwrite an existing configuration")

    subparsers.add_parser("init-game-list", parents=[common], help="create an empty installed games list")

    sub = subparsers.add_parser("list", parents=[common], help="list installed games")
    sub.add_argument("--full", action="store_true", help="print complete entries as JSON")
    sub.add_argument("--json", action="store_true", help="print summaries as JSON")

    sub = subparsers.add_parser("add", parents=[common], help="register a game directory in place")
    sub.add_argument("path", nargs="?", default=".", help="game directory (default: current directory)")

    sub = subparsers.add_parser("remove", parents=[common], help="unregister a game")
    sub.add_argument("game", help="game directory or game id")

    sub = subparsers.add_parser("check", parents=[common], help="check a game's manifest and assets")
    sub.add_argument("path", nargs="?", default=".", help="game directory (default: current directory)")
    sub.add_argument("--json", action="store_true", help="print the report as JSON")

    sub = subparsers.add_parser("make-release", parents=[common], help="package games into release archives")
    sub.add_argument("--src", required=True, help="game directory, or a directory of game directories")
    sub.add_argument("dest", nargs="?", help="output directory (default: configured release dir)")
    sub.add_argument("--json", action="store_true", help="print the created archives as JSON")

    sub = subparsers.add_parser("install", parents=[common], help="install a release archive")
    sub.add_argument("archive", help="release zip file")
    sub.add_argument("--dry-run", action="store_true", help="validate without installing")

    sub = subparsers.add_parser(
        "uninstall", parents=[common], help="uninstall a game installed from a release archive",
        description="Remove an installed game's files and its registry entry. Games registered "
                    "in place with 'add' are refused (not installed); use 'remove' to unregister them.",
    )
    sub.add_argument("game_id", help="id of the installed game")
    sub.add_argument("--dry-run", action="store_true", help="report without removing anything")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)
    config_manager = ConfigurationManager(getattr(args, "config_path", None))

    # Initialize logging first
    setup_logging(config_manager.config_dir, debug=getattr(args, "verbose", False))
    logger.info(f"Starting {__app_name__} v{__version__}: {args.command}")

    try:
        app = PartyManagerApp(config_manager)
        return app.run(args)
    except PartyManagerError as e:
        logger.debug(f"Command '{args.command}' failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return e.exit_code
    except Exception as e:
        logger.exception(f"Unexpected error running '{args.command}'")
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        logger.info(f"{__app_name__} finished")


if __name__ == "__main__":
    sys.exit(main())
