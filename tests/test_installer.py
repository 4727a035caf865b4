from __future__ import annotations

import json
import shutil
import zipfile
from pathlib import Path

import pytest

from conftest import FAKEGAME_FILES, fakegame_manifest
from party_manager.core.installer import Installer, Uninstaller, inspect_archive
from party_manager.core.manifest import ManifestReader
from party_manager.core.registry import GameRegistry, InstalledGameEntry
from party_manager.core.release import ReleaseBuilder
from party_manager.errors import (
    AlreadyInstalled,
    ArchiveMalformed,
    ArchiveUnreadable,
    GameNotFound,
    InstallIOError,
    NotInstalled,
    RegistryMissing,
    RegistryWriteError,
    UninstallIOError,
)


@pytest.fixture()
def release(fakegame: Path, tmp_path: Path) -> Path:
    return ReleaseBuilder().build(fakegame, tmp_path / "releases").filename


def _make_zip(path: Path, entries: dict[str, str]) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


def _manifest_json(game_id: str = "fakegame") -> str:
    return json.dumps(fakegame_manifest(game_id))


def test_install_extracts_every_file(registry: GameRegistry, release: Path, install_root: Path) -> None:
    entry = Installer(registry).install(release, install_root)

    game_dir = install_root / "fakegame"
    for relative_path in FAKEGAME_FILES:
        assert (game_dir / relative_path).is_file(), relative_path

    assert entry.game_id == "fakegame"
    assert entry.install_path == game_dir
    assert entry.base_path == game_dir
    assert set(entry.manifest.asset_paths) == set(FAKEGAME_FILES)

    listed = registry.list()
    assert [e.game_id for e in listed] == ["fakegame"]
    assert listed[0].install_path == game_dir


def test_install_leaves_no_staging_dirs(registry: GameRegistry, release: Path, install_root: Path) -> None:
    Installer(registry).install(release, install_root)
    assert [p.name for p in install_root.iterdir()] == ["fakegame"]


def test_second_install_fails(registry: GameRegistry, release: Path, install_root: Path) -> None:
    installer = Installer(registry)
    installer.install(release, install_root)

    with pytest.raises(AlreadyInstalled):
        installer.install(release, install_root)

    assert [e.game_id for e in registry.list()] == ["fakegame"]
    assert (install_root / "fakegame" / "package.json").is_file()


def test_existing_directory_blocks_install(registry: GameRegistry, release: Path, install_root: Path) -> None:
    (install_root / "fakegame").mkdir(parents=True)
    (install_root / "fakegame" / "keep.txt").write_text("mine")

    with pytest.raises(AlreadyInstalled):
        Installer(registry).install(release, install_root)

    assert registry.list() == []
    assert (install_root / "fakegame" / "keep.txt").read_text() == "mine"


def test_registry_entry_blocks_install(registry: GameRegistry, release: Path, install_root: Path,
                                       fakegame: Path) -> None:
    manifest = ManifestReader().read(fakegame)
    registry.add(InstalledGameEntry("fakegame", manifest, base_path=fakegame))

    with pytest.raises(AlreadyInstalled):
        Installer(registry).install(release, install_root)

    assert not (install_root / "fakegame").exists()


def test_install_requires_registry(tmp_path: Path, release: Path, install_root: Path) -> None:
    registry = GameRegistry(tmp_path / "missing.json")

    with pytest.raises(RegistryMissing):
        Installer(registry).install(release, install_root)
    assert not (install_root / "fakegame").exists()


def test_unreadable_archives(registry: GameRegistry, tmp_path: Path, install_root: Path) -> None:
    with pytest.raises(ArchiveUnreadable):
        Installer(registry).install(tmp_path / "nope.zip", install_root)

    not_zip = tmp_path / "not.zip"
    not_zip.write_text("definitely not a zip")
    with pytest.raises(ArchiveUnreadable):
        Installer(registry).install(not_zip, install_root)


@pytest.mark.parametrize(
    "entries",
    [
        {},
        {"readme.txt": "loose file", "fakegame/package.json": "{}"},
        {"fakegame/package.json": "{}", "othergame/package.json": "{}"},
        {"fakegame/game.html": "<html>"},
        {"fakegame/package.json": "{}", "fakegame/../../escape.txt": "x"},
        {"bad id!/package.json": "{}"},
    ],
)
def test_malformed_archives(registry: GameRegistry, tmp_path: Path, install_root: Path,
                            entries: dict[str, str]) -> None:
    archive = _make_zip(tmp_path / "bad.zip", entries)

    with pytest.raises(ArchiveMalformed):
        Installer(registry).install(archive, install_root)

    assert registry.list() == []
    assert not install_root.exists() or list(install_root.iterdir()) == []


def test_manifest_id_must_match_folder(registry: GameRegistry, tmp_path: Path, install_root: Path) -> None:
    archive = _make_zip(tmp_path / "mismatch.zip", {
        "fakegame/package.json": _manifest_json("othergame"),
        "fakegame/game.html": "<html>",
    })

    with pytest.raises(ArchiveMalformed):
        Installer(registry).install(archive, install_root)

    assert registry.list() == []
    assert list(install_root.iterdir()) == []


def test_inspect_archive(tmp_path: Path) -> None:
    archive = _make_zip(tmp_path / "ok.zip", {
        "fakegame/": "",
        "fakegame/package.json": _manifest_json(),
        "fakegame/css/game.css": "body {}",
    })

    with zipfile.ZipFile(archive) as zf:
        game_id, asset_paths = inspect_archive(zf)

    assert game_id == "fakegame"
    assert asset_paths == ("package.json", "css/game.css")


def test_extraction_failure_rolls_back(registry: GameRegistry, release: Path, install_root: Path,
                                       monkeypatch) -> None:
    def fail_extract(zf, dest):
        (dest / "fakegame").mkdir()
        (dest / "fakegame" / "package.json").write_text("{}")
        raise OSError("no space left on device")

    monkeypatch.setattr(Installer, "_extract", staticmethod(fail_extract))

    with pytest.raises(InstallIOError):
        Installer(registry).install(release, install_root)

    assert list(install_root.iterdir()) == []
    assert registry.list() == []


def test_registration_failure_removes_installed_files(registry: GameRegistry, release: Path,
                                                      install_root: Path, monkeypatch) -> None:
    def fail_add(entry):
        raise RegistryWriteError("read-only filesystem")

    monkeypatch.setattr(registry, "add", fail_add)

    with pytest.raises(RegistryWriteError):
        Installer(registry).install(release, install_root)

    assert list(install_root.iterdir()) == []
    assert registry.list() == []


def test_dry_run_changes_nothing(registry: GameRegistry, release: Path, install_root: Path) -> None:
    entry = Installer(registry).install(release, install_root, dry_run=True)

    assert entry.game_id == "fakegame"
    assert entry.manifest.version == "0.0.1"
    assert not install_root.exists()
    assert registry.list() == []


def test_install_uninstall_round_trip(registry: GameRegistry, release: Path, install_root: Path) -> None:
    install_root.mkdir()
    Installer(registry).install(release, install_root)

    removed = Uninstaller(registry).uninstall("fakegame", install_root)

    assert removed.game_id == "fakegame"
    assert not (install_root / "fakegame").exists()
    assert list(install_root.iterdir()) == []
    assert registry.list() == []


def test_uninstall_twice_reports_not_found(registry: GameRegistry, release: Path, install_root: Path) -> None:
    Installer(registry).install(release, install_root)
    uninstaller = Uninstaller(registry)
    uninstaller.uninstall("fakegame", install_root)

    with pytest.raises(GameNotFound):
        uninstaller.uninstall("fakegame", install_root)

    assert registry.list() == []
    assert not (install_root / "fakegame").exists()


def test_uninstall_with_directory_already_gone(registry: GameRegistry, release: Path,
                                               install_root: Path) -> None:
    Installer(registry).install(release, install_root)
    shutil.rmtree(install_root / "fakegame")

    Uninstaller(registry).uninstall("fakegame", install_root)
    assert registry.list() == []


def test_uninstall_failure_keeps_registry_entry(registry: GameRegistry, release: Path,
                                                install_root: Path, monkeypatch) -> None:
    Installer(registry).install(release, install_root)

    def fail_remove(path):
        raise OSError("device busy")

    monkeypatch.setattr("party_manager.core.installer.remove_tree", fail_remove)

    with pytest.raises(UninstallIOError):
        Uninstaller(registry).uninstall("fakegame", install_root)

    assert [e.game_id for e in registry.list()] == ["fakegame"]


def test_uninstall_refuses_added_games(registry: GameRegistry, fakegame: Path, install_root: Path) -> None:
    manifest = ManifestReader().read(fakegame)
    registry.add(InstalledGameEntry("fakegame", manifest, base_path=fakegame))

    with pytest.raises(NotInstalled):
        Uninstaller(registry).uninstall("fakegame", install_root)

    assert (fakegame / "package.json").is_file()
    assert len(registry.list()) == 1


def test_uninstall_dry_run(registry: GameRegistry, release: Path, install_root: Path) -> None:
    Installer(registry).install(release, install_root)

    Uninstaller(registry).uninstall("fakegame", install_root, dry_run=True)

    assert (install_root / "fakegame" / "package.json").is_file()
    assert len(registry.list()) == 1
