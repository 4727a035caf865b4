"""Pre-release checks of a game's manifest and assets.

Confirms that every asset the manifest lists exists and that the icon and
screenshot shown in the game menu are decodable images.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from .manifest import GameManifest, ManifestReader
from ..config.path_validator import is_safe_relative_path
from ..errors import AssetCheckFailed
from ..logging_config import get_logger

logger = get_logger("asset_check")


@dataclass
class ImageInfo:
    """Basic facts about an image asset"""
    path: str
    format: str
    width: int
    height: int


@dataclass
class CheckReport:
    """Result of a successful asset check"""
    manifest: GameManifest
    images: list[ImageInfo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "gameId": self.manifest.game_id,
            "files": len(self.manifest.asset_paths),
            "images": [
                {"path": i.path, "format": i.format, "width": i.width, "height": i.height}
                for i in self.images
            ],
        }


class AssetChecker:
    """Validate a game directory before it is released."""

    def __init__(self, reader: ManifestReader | None = None):
        self.reader = reader or ManifestReader()

    def check(self, source_dir: Path) -> CheckReport:
        """Check the manifest and assets of a game directory.

        Args:
            source_dir: Game directory containing package.json

        Returns:
            CheckReport with the decoded manifest and image details

        Raises:
            ManifestNotFound: If there is no package.json
            ManifestInvalid: If package.json cannot be decoded
            AssetCheckFailed: If any asset is missing or an image is invalid
        """
        source_dir = Path(source_dir)
        manifest = self.reader.read(source_dir)
        problems = []

        for relative_path in manifest.asset_paths:
            if not (source_dir / relative_path).is_file():
                problems.append(f"missing asset: {relative_path}")

        images = []
        for label, relative_path in (("icon", manifest.icon), ("screenshot", manifest.screenshot)):
            if not is_safe_relative_path(relative_path):
                problems.append(f"{label} path '{relative_path}' escapes the game directory")
                continue
            try:
                images.append(self._inspect_image(source_dir / relative_path, relative_path))
            except FileNotFoundError:
                problems.append(f"missing {label}: {relative_path}")
            except (UnidentifiedImageError, OSError, SyntaxError) as e:
                problems.append(f"{label} '{relative_path}' is not a valid image: {e}")

        if problems:
            for problem in problems:
                logger.warning(f"[{manifest.game_id}] {problem}")
            raise AssetCheckFailed(
                f"Game '{manifest.game_id}' failed checks: " + "; ".join(problems),
                problems,
            )

        logger.info(f"Game '{manifest.game_id}' passed checks ({len(manifest.asset_paths)} files)")
        return CheckReport(manifest=manifest, images=images)

    @staticmethod
    def _inspect_image(path: Path, relative_path: str) -> ImageInfo:
        # verify() leaves the image unusable, so read size and format first
        with Image.open(path) as img:
            info = ImageInfo(
                path=relative_path,
                format=img.format or "unknown",
                width=img.width,
                height=img.height,
            )
            img.verify()
        return info
