"""Configuration data models"""

from dataclasses import dataclass, field
from pathlib import Path

from .paths import AppPaths


@dataclass
class Settings:
    """Application settings"""
    install_dir: Path = field(default_factory=lambda: AppPaths.INSTALL_DIR_DEFAULT)
    game_list_path: Path = field(default_factory=lambda: AppPaths.GAME_LIST_FILE)
    release_dir: Path = field(default_factory=lambda: AppPaths.RELEASE_DIR_DEFAULT)


@dataclass
class AppConfiguration:
    """Complete application configuration"""
    settings: Settings = field(default_factory=Settings)
    config_path: Path | None = None  # File the configuration was loaded from

    @property
    def install_dir(self) -> Path:
        return self.settings.install_dir

    @property
    def game_list_path(self) -> Path:
        return self.settings.game_list_path

    @property
    def release_dir(self) -> Path:
        return self.settings.release_dir
