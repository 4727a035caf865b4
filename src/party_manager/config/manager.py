"""Load and save the XML configuration: install root, games list and release dir"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional
from xml.dom import minidom

from .paths import AppPaths
from .schema import AppConfiguration, Settings
from ..errors import ConfigAlreadyExists, ConfigurationError
from ..logging_config import get_logger

logger = get_logger("config_manager")


class ConfigurationManager:
    """Reads and writes configuration.xml.

    Handles loading and saving configuration to XML format. Relative paths
    stored in the file are resolved against the directory holding it, so a
    configuration can be moved together with its games list and install dir.
    """

    def __init__(self, config_path: Path | None = None):
        self.config_path = Path(config_path).absolute() if config_path else AppPaths.CONFIG_FILE
        self.config: Optional[AppConfiguration] = None

    @property
    def config_dir(self) -> Path:
        return self.config_path.parent

    def exists(self) -> bool:
        return self.config_path.is_file()

    def load(self) -> AppConfiguration:
        """Load settings from configuration.xml.

        Returns:
            AppConfiguration with absolute paths

        Raises:
            FileNotFoundError: If there is no configuration file
            ConfigurationError: If XML is malformed
        """
        logger.debug(f"Loading configuration from {self.config_path}")
        try:
            tree = ET.parse(self.config_path)
        except ET.ParseError as e:
            raise ConfigurationError(f"Configuration file {self.config_path} is not valid XML: {e}") from e
        root = tree.getroot()

        defaults = self._default_settings()

        # Use defaults for any element that is missing
        settings_elem = root.find("Settings")
        if settings_elem is not None:
            settings = Settings(
                install_dir=self._parse_path(settings_elem, "InstallDir") or defaults.install_dir,
                game_list_path=self._parse_path(settings_elem, "GameListPath") or defaults.game_list_path,
                release_dir=self._parse_path(settings_elem, "ReleaseDir") or defaults.release_dir,
            )
        else:
            logger.warning(f"No Settings element in {self.config_path}, using defaults")
            settings = defaults

        self.config = AppConfiguration(settings=settings, config_path=self.config_path)
        logger.debug(
            f"Configuration loaded: install_dir={settings.install_dir}, "
            f"game_list={settings.game_list_path}"
        )
        return self.config

    def load_or_default(self) -> AppConfiguration:
        """Load the configuration file, or build defaults if there is none."""
        if self.exists():
            return self.load()
        logger.debug(f"No configuration at {self.config_path}, using defaults")
        return self.create_default()

    def save(self, overwrite: bool = True) -> None:
        """Write the current settings to configuration.xml.

        Creates the configuration directory if it doesn't exist.

        Args:
            overwrite: If False, refuse to replace an existing file

        Raises:
            ConfigAlreadyExists: If the file exists and overwrite is False
        """
        if self.config is None:
            raise ValueError("No configuration to save")

        if not overwrite and self.exists():
            raise ConfigAlreadyExists(f"Configuration already exists: {self.config_path}")

        logger.debug(f"Saving configuration to {self.config_path}")

        AppPaths.ensure_config_dir(self.config_dir)

        root = ET.Element("PartyManager", version="1.0")

        settings_elem = ET.SubElement(root, "Settings")
        ET.SubElement(settings_elem, "InstallDir").text = self._format_path(self.config.settings.install_dir)
        ET.SubElement(settings_elem, "GameListPath").text = self._format_path(self.config.settings.game_list_path)
        ET.SubElement(settings_elem, "ReleaseDir").text = self._format_path(self.config.settings.release_dir)

        # Write pretty-printed XML
        xml_str = minidom.parseString(ET.tostring(root, encoding="unicode")).toprettyxml(indent="  ")
        # Remove extra blank lines that minidom adds
        lines = [line for line in xml_str.split('\n') if line.strip()]
        xml_str = '\n'.join(lines) + '\n'

        self.config_path.write_text(xml_str, encoding="utf-8")
        logger.info(f"Configuration written to {self.config_path}")

    def create_default(
        self,
        install_dir: Path | None = None,
        game_list_path: Path | None = None,
        release_dir: Path | None = None,
    ) -> AppConfiguration:
        """Create a default configuration.

        Defaults live next to the configuration file.

        Args:
            install_dir: Optional install root override
            game_list_path: Optional installed games list override
            release_dir: Optional release output directory override

        Returns:
            New AppConfiguration with default values
        """
        defaults = self._default_settings()
        self.config = AppConfiguration(
            settings=Settings(
                install_dir=Path(install_dir).absolute() if install_dir else defaults.install_dir,
                game_list_path=Path(game_list_path).absolute() if game_list_path else defaults.game_list_path,
                release_dir=Path(release_dir).absolute() if release_dir else defaults.release_dir,
            ),
            config_path=self.config_path,
        )
        return self.config

    def _default_settings(self) -> Settings:
        return Settings(
            install_dir=self.config_dir / AppPaths.INSTALL_DIR_DEFAULT.name,
            game_list_path=self.config_dir / AppPaths.GAME_LIST_FILE.name,
            release_dir=self.config_dir / AppPaths.RELEASE_DIR_DEFAULT.name,
        )

    def _format_path(self, path: Path) -> str:
        """Store paths under the config directory relative to it."""
        try:
            return path.relative_to(self.config_dir).as_posix()
        except ValueError:
            return str(path)

    def _parse_path(self, parent: ET.Element, tag: str) -> Optional[Path]:
        """Read a path element, resolving it against the config directory."""
        elem = parent.find(tag)
        if elem is not None and elem.text and elem.text.strip():
            return AppPaths.expand_path(elem.text, base_dir=self.config_dir)
        return None
