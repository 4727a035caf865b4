from __future__ import annotations

import json
from pathlib import Path

import pytest
from PIL import Image

from party_manager.core.registry import GameRegistry

FAKEGAME_FILES = (
    "package.json",
    "file1.html",
    "somedir/file2.html",
    "game.html",
    "css/game.css",
    "scripts/game.js",
    "controller.html",
    "css/controller.css",
    "scripts/controller.js",
    "icon.png",
    "screenshot.png",
)


def fakegame_manifest(game_id: str = "fakegame", **section) -> dict:
    return {
        "name": "Fake Game",
        "version": "0.0.1",
        "description": "A game used by the tests",
        "happyFunTimes": {
            "gameId": game_id,
            "apiVersion": "1.0.0",
            "gameType": "html",
            "category": "game",
            **section,
        },
    }


def make_game(root: Path, game_id: str = "fakegame", manifest: dict | None = None) -> Path:
    """Create a complete game source tree under root/<game_id>."""
    game_dir = root / game_id
    for relative_path in FAKEGAME_FILES:
        path = game_dir / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if relative_path == "package.json":
            continue
        if relative_path.endswith(".png"):
            size = (64, 64) if relative_path == "icon.png" else (320, 240)
            Image.new("RGB", size, (200, 80, 40)).save(path, format="PNG")
        else:
            path.write_text(f"<!-- {relative_path} -->\n", encoding="utf-8")

    document = manifest if manifest is not None else fakegame_manifest(game_id)
    (game_dir / "package.json").write_text(json.dumps(document, indent=2), encoding="utf-8")
    return game_dir


@pytest.fixture()
def fakegame(tmp_path: Path) -> Path:
    return make_game(tmp_path / "src")


@pytest.fixture()
def registry(tmp_path: Path) -> GameRegistry:
    reg = GameRegistry(tmp_path / "config" / "installed-games.json")
    reg.init()
    return reg


@pytest.fixture()
def install_root(tmp_path: Path) -> Path:
    return tmp_path / "testgameinstalldir"
