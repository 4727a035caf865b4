"""Party Manager - Local package manager for party game bundles.

This application provides:
    - A registry of installed games (the single source of truth)
    - Release packaging of a game's source directory into a zip archive
    - Installation of release archives into an install root
    - Uninstallation of installed games
    - Manifest and asset checks for game source directories

A game is a directory holding a package.json manifest plus the static web
assets (HTML/CSS/JS/images) for its display and controller surfaces.

Package Structure:
    app: Command line entry point and orchestrator
    config: Configuration management, paths, schemas, and path validation
    core: Manifest decoding, registry, release builder, installer, asset check

Quick Start:
    Run from command line::

        party-manager init-game-list
        party-manager make-release --src=path/to/game releases --json
        party-manager install releases/mygame-1.0.0.zip

    Or programmatically::

        from party_manager.app import main
        main(["list", "--full"])

Configuration:
    - Config file: ~/.party-manager/configuration.xml (or $PARTY_MANAGER_HOME)
    - Log file: ~/.party-manager/party_manager.log
    - Installed games list: ~/.party-manager/installed-games.json
"""

__version__ = "1.0.0"
__app_name__ = "Party Manager"
