from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from conftest import FAKEGAME_FILES, fakegame_manifest, make_game
from party_manager.core.release import ReleaseBuilder
from party_manager.errors import BuildIOError, ManifestInvalid, ManifestNotFound


def _names(archive_path: Path) -> list[str]:
    with zipfile.ZipFile(archive_path) as zf:
        return zf.namelist()


def test_archive_contains_exactly_the_game_files(fakegame: Path, tmp_path: Path) -> None:
    archive = ReleaseBuilder().build(fakegame, tmp_path / "out")

    assert archive.filename.exists()
    assert archive.filename.name == "fakegame-0.0.1.zip"
    assert archive.game_id == "fakegame"
    assert set(_names(archive.filename)) == {f"fakegame/{p}" for p in FAKEGAME_FILES}
    assert set(archive.entries) == set(_names(archive.filename))


def test_nested_paths_are_kept(fakegame: Path, tmp_path: Path) -> None:
    archive = ReleaseBuilder().build(fakegame, tmp_path / "out")

    with zipfile.ZipFile(archive.filename) as zf:
        assert zf.read("fakegame/somedir/file2.html").decode() == "<!-- somedir/file2.html -->\n"


def test_entry_order_is_reproducible(fakegame: Path, tmp_path: Path) -> None:
    first = _names(ReleaseBuilder().build(fakegame, tmp_path / "a").filename)
    second = _names(ReleaseBuilder().build(fakegame, tmp_path / "b").filename)

    assert first == second
    assert first == sorted(first)


def test_unversioned_game_name(tmp_path: Path) -> None:
    document = fakegame_manifest()
    del document["version"]
    game_dir = make_game(tmp_path / "src", manifest=document)

    archive = ReleaseBuilder().build(game_dir, tmp_path / "out")
    assert archive.filename.name == "fakegame.zip"
    assert archive.version is None


def test_release_dir_inside_game_is_not_packaged(fakegame: Path) -> None:
    dest = fakegame / "releases"
    first = ReleaseBuilder().build(fakegame, dest)
    second = ReleaseBuilder().build(fakegame, dest)

    assert first.filename == second.filename
    assert not any("releases/" in name for name in _names(second.filename))


def test_missing_declared_asset_leaves_no_archive(tmp_path: Path) -> None:
    document = fakegame_manifest(files=["game.html", "missing.html"])
    game_dir = make_game(tmp_path / "src", manifest=document)
    dest = tmp_path / "out"

    with pytest.raises(BuildIOError):
        ReleaseBuilder().build(game_dir, dest)

    assert not dest.exists() or list(dest.iterdir()) == []


def test_write_failure_removes_temp_archive(fakegame: Path, tmp_path: Path, monkeypatch) -> None:
    dest = tmp_path / "out"

    def fail_write(archive_path, source_dir, manifest):
        Path(archive_path).write_bytes(b"partial")
        raise OSError("disk full")

    monkeypatch.setattr(ReleaseBuilder, "_write_archive", staticmethod(fail_write))

    with pytest.raises(BuildIOError):
        ReleaseBuilder().build(fakegame, dest)

    assert list(dest.iterdir()) == []


def test_manifest_errors_propagate(tmp_path: Path) -> None:
    with pytest.raises(ManifestNotFound):
        ReleaseBuilder().build(tmp_path, tmp_path / "out")

    (tmp_path / "package.json").write_text('{"happyFunTimes": {}}')
    with pytest.raises(ManifestInvalid):
        ReleaseBuilder().build(tmp_path, tmp_path / "out")


def test_discover_single_game(fakegame: Path) -> None:
    assert ReleaseBuilder().discover(fakegame) == [fakegame]


def test_build_all_packages_each_game(tmp_path: Path) -> None:
    games_dir = tmp_path / "games"
    make_game(games_dir, "zgame")
    make_game(games_dir, "agame")
    (games_dir / "not-a-game").mkdir()

    archives = ReleaseBuilder().build_all(games_dir, tmp_path / "out")

    assert [a.game_id for a in archives] == ["agame", "zgame"]
    for archive in archives:
        assert all(name.startswith(f"{archive.game_id}/") for name in _names(archive.filename))


def test_discover_without_games(tmp_path: Path) -> None:
    with pytest.raises(ManifestNotFound):
        ReleaseBuilder().discover(tmp_path)


def test_descriptor_is_json_ready(fakegame: Path, tmp_path: Path) -> None:
    archive = ReleaseBuilder().build(fakegame, tmp_path / "out")
    assert archive.to_dict() == {
        "filename": str(archive.filename),
        "gameId": "fakegame",
        "version": "0.0.1",
        "files": len(FAKEGAME_FILES),
    }


def test_declared_patterns_are_packaged(tmp_path: Path) -> None:
    manifest = fakegame_manifest(files=["*.html", "css/*", "scripts/**"])
    game_dir = make_game(tmp_path / "src", manifest=manifest)

    archive = ReleaseBuilder().build(game_dir, tmp_path / "out")

    names = _names(archive.filename)
    assert "fakegame/scripts/game.js" in names
    assert "fakegame/scripts/controller.js" in names
    assert "fakegame/css/game.css" in names
    assert "fakegame/icon.png" not in names
