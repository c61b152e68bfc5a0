"""Cargo.toml reading utilities.

Uses tomlkit to preserve formatting and comments when modifying Cargo.toml
files. Edits must leave every untouched byte of a manifest as it was, so
documents are always edited in place and dumped back, never rebuilt.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import tomlkit
import tomlkit.exceptions

from .errors import ManifestParseError, ManifestReadError


def read_manifest_text(path: Path) -> str:
    """Read a manifest as text, raising ManifestReadError if that fails.

    Line endings are returned as stored so CRLF manifests survive a rewrite.
    """
    try:
        with open(path, encoding="utf-8", newline="") as fh:
            return fh.read()
    except OSError as exc:
        raise ManifestReadError(
            path,
            f"Failed to read {path}: {exc}",
            hint=f"Check that {path} exists and is readable.",
        ) from exc


def parse_manifest(text: str, path: Path) -> tomlkit.TOMLDocument:
    """Parse manifest text, raising ManifestParseError on invalid TOML."""
    try:
        return tomlkit.parse(text)
    except tomlkit.exceptions.ParseError as exc:
        raise ManifestParseError(path, f"Invalid TOML in {path}: {exc}") from exc


def load_manifest(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a Cargo.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.
    """
    return parse_manifest(read_manifest_text(path), path)


def dump_manifest(doc: tomlkit.TOMLDocument) -> str:
    """Serialize a TOMLDocument, preserving original formatting."""
    return tomlkit.dumps(doc)


def get_package_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """Extract [package].name, returning fallback if it is not specified."""
    return str(doc.get("package", {}).get("name", fallback))


def get_package_version(doc: tomlkit.TOMLDocument, path: Path) -> str:
    """Extract the literal version from [package].version.

    Raises:
        ManifestParseError: If there is no [package] table, no version, or the
            version is inherited with ``version.workspace = true``.
    """
    package = doc.get("package")
    if not isinstance(package, dict):
        raise ManifestParseError(path, f"No [package] table in {path}")
    version = package.get("version")
    if isinstance(version, dict):
        raise ManifestParseError(
            path,
            f"{path} inherits its version from the workspace",
            hint="Bump [workspace.package].version in the root Cargo.toml instead.",
        )
    if version is None:
        raise ManifestParseError(path, f"No [package].version in {path}")
    return str(version)


def iter_dependency_tables(
    doc: tomlkit.TOMLDocument,
) -> Iterator[tuple[str, dict[str, Any]]]:
    """Yield every table that declares normal dependencies.

    Covers ``[dependencies]`` and ``[target.<cfg>.dependencies]``. Dev and
    build dependency tables are not included.

    Yields:
        (label, table) pairs where label is the dotted table name.
    """
    deps = doc.get("dependencies")
    if isinstance(deps, dict):
        yield "dependencies", deps

    target = doc.get("target")
    if isinstance(target, dict):
        for cfg, target_table in target.items():
            if isinstance(target_table, dict):
                sub = target_table.get("dependencies")
                if isinstance(sub, dict):
                    yield f"target.{cfg}.dependencies", sub


def find_dependency_keys(table: dict[str, Any], dep_name: str) -> list[str]:
    """Find the keys of a dependency table that refer to a package.

    Matches the key itself or, for renamed dependencies, the ``package``
    field of the entry.

    Examples:
        core = "1.0"                          → matches "core"
        my-core = { package = "core", ... }   → matches "my-core"
    """
    keys: list[str] = []
    for key, entry in table.items():
        if isinstance(entry, dict) and "package" in entry:
            if str(entry["package"]) == dep_name:
                keys.append(str(key))
        elif str(key) == dep_name:
            keys.append(str(key))
    return keys


def get_release_settings(doc: tomlkit.TOMLDocument) -> dict[str, Any]:
    """Extract [workspace.metadata.easy-release] as a plain dict."""
    table = (
        doc.get("workspace", {}).get("metadata", {}).get("easy-release", {})
    )
    if not isinstance(table, dict):
        return {}
    return {str(k): _unwrap(v) for k, v in table.items()}


def _unwrap(value: Any) -> Any:
    # tomlkit items know how to turn themselves into plain Python values
    return value.unwrap() if hasattr(value, "unwrap") else value
