"""Default paths for configuration, installed games and releases"""

import os
from pathlib import Path


def _default_config_dir() -> Path:
    home = os.environ.get("PARTY_MANAGER_HOME", "~/.party-manager")
    return Path(os.path.expandvars(home)).expanduser()


class AppPaths:
    """Default paths for configuration, installed games and releases.

    All paths use environment variable expansion for portability.
    """

    # Configuration file location
    CONFIG_DIR = _default_config_dir()
    CONFIG_FILE = CONFIG_DIR / "configuration.xml"

    # Registry of installed games (stored in config dir)
    GAME_LIST_FILE = CONFIG_DIR / "installed-games.json"

    # Default install root and release output
    INSTALL_DIR_DEFAULT = CONFIG_DIR / "games"
    RELEASE_DIR_DEFAULT = CONFIG_DIR / "releases"

    # Name of the manifest file inside every game directory
    MANIFEST_FILE = "package.json"

    @classmethod
    def expand_path(cls, path_str: str, base_dir: Path | None = None) -> Path:
        """Expand environment variables and ~ in a path string.

        Args:
            path_str: Path string potentially containing environment variables
            base_dir: Directory that relative paths are resolved against

        Returns:
            Absolute Path object with expanded variables
        """
        path = Path(os.path.expandvars(path_str.strip())).expanduser()
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        return path.absolute()

    @classmethod
    def ensure_config_dir(cls, config_dir: Path | None = None) -> Path:
        """Ensure the configuration directory exists.

        Args:
            config_dir: Optional custom config directory, uses default if None

        Returns:
            Path to the configuration directory
        """
        path = config_dir or cls.CONFIG_DIR
        path.mkdir(parents=True, exist_ok=True)
        return path
