"""Core business logic module.

This module contains the game lifecycle: manifests, the installed games
registry, release packaging, and install/uninstall.

Submodules:
    manifest: GameManifest and ManifestReader for decoding package.json
    registry: GameRegistry, the JSON list of installed games
    release: ReleaseBuilder for packaging games into zip archives
    installer: Installer and Uninstaller for release archives
    transaction: Transaction for multi-step operations with rollback
    asset_check: AssetChecker for validating assets and images
    fs: Filesystem helpers (recursive removal)

The registry is always passed in explicitly; no component keeps a copy of
it between operations.
"""

from .asset_check import AssetChecker, CheckReport
from .installer import Installer, Uninstaller
from .manifest import GameManifest, ManifestReader
from .registry import GameRegistry, InstalledGameEntry
from .release import ReleaseArchive, ReleaseBuilder
from .transaction import Transaction

__all__ = [
    "AssetChecker",
    "CheckReport",
    "GameManifest",
    "GameRegistry",
    "InstalledGameEntry",
    "Installer",
    "ManifestReader",
    "ReleaseArchive",
    "ReleaseBuilder",
    "Transaction",
    "Uninstaller",
]
