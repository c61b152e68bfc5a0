"""Tests for easy_release.toml."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit

from easy_release.errors import ManifestParseError, ManifestReadError
from easy_release.toml import (
    dump_manifest,
    find_dependency_keys,
    get_package_name,
    get_package_version,
    get_release_settings,
    iter_dependency_tables,
    load_manifest,
)

MANIFEST = """\
# Top comment
[package]
name = "demo"
version = "0.3.1"   # bumped by release tooling

[dependencies]
core = { path = "../core", version = "0.3" }
alias = { package = "util", version = "1" }

[dev-dependencies]
core = { path = "../core" }

[target.'cfg(windows)'.dependencies]
winapi = "0.3"
"""


class TestLoadManifest:
    def test_round_trip_is_lossless(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text(MANIFEST)
        assert dump_manifest(load_manifest(path)) == MANIFEST

    def test_missing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        with pytest.raises(ManifestReadError) as exc_info:
            load_manifest(path)
        assert exc_info.value.path == path

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text("[package\n")
        with pytest.raises(ManifestParseError, match="Invalid TOML"):
            load_manifest(path)


class TestPackageFields:
    def test_name_and_version(self) -> None:
        doc = tomlkit.parse(MANIFEST)
        assert get_package_name(doc, "fallback") == "demo"
        assert get_package_version(doc, Path("Cargo.toml")) == "0.3.1"

    def test_name_fallback(self) -> None:
        doc = tomlkit.parse("[workspace]\n")
        assert get_package_name(doc, "fallback") == "fallback"

    def test_virtual_manifest_has_no_version(self) -> None:
        doc = tomlkit.parse('[workspace]\nmembers = ["a"]\n')
        with pytest.raises(ManifestParseError, match="No \\[package\\] table"):
            get_package_version(doc, Path("Cargo.toml"))

    def test_missing_version(self) -> None:
        doc = tomlkit.parse('[package]\nname = "demo"\n')
        with pytest.raises(ManifestParseError, match="No \\[package\\].version"):
            get_package_version(doc, Path("Cargo.toml"))

    def test_inherited_version(self) -> None:
        doc = tomlkit.parse('[package]\nname = "demo"\nversion.workspace = true\n')
        with pytest.raises(ManifestParseError) as exc_info:
            get_package_version(doc, Path("Cargo.toml"))
        assert "[workspace.package].version" in str(exc_info.value)


class TestDependencyTables:
    def test_normal_and_target_tables(self) -> None:
        doc = tomlkit.parse(MANIFEST)
        labels = [label for label, _ in iter_dependency_tables(doc)]
        assert labels == ["dependencies", "target.cfg(windows).dependencies"]

    def test_no_tables(self) -> None:
        doc = tomlkit.parse('[package]\nname = "demo"\n')
        assert list(iter_dependency_tables(doc)) == []

    def test_find_by_key(self) -> None:
        table = tomlkit.parse(MANIFEST)["dependencies"]
        assert find_dependency_keys(table, "core") == ["core"]

    def test_find_renamed(self) -> None:
        table = tomlkit.parse(MANIFEST)["dependencies"]
        assert find_dependency_keys(table, "util") == ["alias"]
        assert find_dependency_keys(table, "alias") == []


class TestReleaseSettings:
    def test_reads_table(self) -> None:
        doc = tomlkit.parse(
            "[workspace]\n"
            'members = ["a"]\n'
            "\n"
            "[workspace.metadata.easy-release]\n"
            "dry-run = false\n"
            'ignore = ["xtask"]\n'
        )
        settings = get_release_settings(doc)
        assert settings == {"dry-run": False, "ignore": ["xtask"]}
        assert type(settings["ignore"]) is list

    def test_absent(self) -> None:
        doc = tomlkit.parse('[workspace]\nmembers = ["a"]\n')
        assert get_release_settings(doc) == {}
