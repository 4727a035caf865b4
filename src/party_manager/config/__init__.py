"""Party Manager configuration.

Where games are installed, where the installed games list lives and where
releases are written by default.

Submodules:
    manager: ConfigurationManager, reads and writes configuration.xml
    schema: Data classes defining configuration structure (Settings, AppConfiguration)
    paths: AppPaths with default locations for config, games list and install root
    path_validator: Game id and path validation to prevent dangerous file operations

The configuration is stored as XML in ~/.party-manager/configuration.xml unless
a different file is passed with --config-path.
"""

from .manager import ConfigurationManager
from .schema import AppConfiguration, Settings
from .paths import AppPaths

__all__ = [
    "ConfigurationManager",
    "AppConfiguration",
    "Settings",
    "AppPaths",
]
